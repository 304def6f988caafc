"""Pipeline orchestration for NPI Match."""
