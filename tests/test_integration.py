"""
Integration tests for the complete NPI Match pipeline.
"""

import pytest
import pandas as pd
import tempfile
import sys
from pathlib import Path
from unittest.mock import patch

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from npi_match.ingestion.input_loader import to_input_records
from npi_match.ingestion.schema_validator import InputValidationError
from npi_match.models import RESULT_COLUMNS
from npi_match.pipeline.run_npi_match import NPIMatchPipeline, RowProcessingError, main

from fakes import FakeRegistryClient, make_candidate


class TestNPIMatchPipeline:
    """Integration tests for the complete pipeline."""

    def setup_method(self):
        """Setup test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

        self.test_data = pd.DataFrame({
            "First Name": ["Jane", "John", "Maria", "Ann"],
            "Last Name": ["Doe", "Smith", "Garcia", "Lee"],
            "Zip": ["10001", "60601", "94105", "02139"],
            "Specialty": ["Cardiology", "Oncology", "Pediatrics", "Dermatology"],
        })

        self.test_file = Path(self.temp_dir) / "test_providers.csv"
        self.test_data.to_csv(self.test_file, index=False)

        self.output_path = Path(self.temp_dir) / "output"

        self.config_path = Path(self.temp_dir) / "test_config.yaml"
        self.create_test_config()

        self.client = FakeRegistryClient({
            # Two exact matches, one in the input zip
            ("Jane", "Doe", True): [
                make_candidate("1000000001", "JANE", "DOE", [("1 Elm St", "30301", "LOCATION")]),
                make_candidate("1000000002", "JANE", "DOE",
                               [("350 5th Ave", "10001", "LOCATION")], taxonomy="Cardiovascular Disease"),
            ],
            # Single exact match outside the input zip
            ("John", "Smith", True): [
                make_candidate("2000000001", "JOHN", "SMITH", [("9 Lake Dr", "60614", "MAILING")]),
            ],
            # Found only by wildcard
            ("Maria", "Garcia", False): [
                make_candidate("3000000001", "MARIA", "GARCIA-LOPEZ", [("1 Market St", "94105", "LOCATION")]),
            ],
        })

    def create_test_config(self):
        """Create minimal test configuration."""
        config_content = f"""
registry:
  rate_limit_delay: 0

input:
  required_columns:
    - "First Name"
    - "Last Name"
    - "Zip"

output:
  filename: "matches.csv"

logging:
  log_dir: "{self.temp_dir}/logs"
"""
        self.config_path.write_text(config_content)

    def test_full_pipeline_execution(self):
        """Test complete pipeline execution."""
        pipeline = NPIMatchPipeline(str(self.config_path), registry_client=self.client)

        report = pipeline.run_pipeline(str(self.test_file), output_path=str(self.output_path))

        assert "pipeline_execution" in report
        assert "match_summary" in report
        assert report["match_summary"]["total_processed"] == 4
        assert report["match_summary"]["matched"] == 3
        assert report["registry"]["requests"] == 6

        output_file = self.output_path / "matches.csv"
        assert output_file.exists()

        output_df = pd.read_csv(output_file, dtype=str, keep_default_na=False)
        assert list(output_df.columns) == list(self.test_data.columns) + RESULT_COLUMNS
        assert list(output_df["Original Index"]) == ["0", "1", "2", "3"]
        assert list(output_df["Zip"]) == ["10001", "60601", "94105", "02139"]
        assert list(output_df["Match Method"]) == ["EXACT_WITH_ZIP", "EXACT", "WILDCARD", "NO_MATCH"]

    def test_jane_doe_end_to_end(self):
        """Two exact matches are resolved by zip."""
        pipeline = NPIMatchPipeline(str(self.config_path), registry_client=self.client)

        df = pipeline.ingest_data(str(self.test_file))
        pipeline.validate_data(df)
        results = pipeline.match_providers(to_input_records(df, pipeline.config["input"]))
        row = pipeline.join_results(df, results).iloc[0]

        assert row["Match Method"] == "EXACT_WITH_ZIP"
        assert row["Final Match Score"] == 1.0
        assert row["Matched Zip"] == "10001"
        assert row["NPI"] == "1000000002"
        assert row["Total Matches Found"] == 2
        assert row["Matched Taxonomy"] == "Cardiovascular Disease"
        assert row["Specialty"] == "Cardiology"

    def test_row_order_preserved(self):
        """Results mirror input order and length whatever the outcome."""
        pipeline = NPIMatchPipeline(str(self.config_path), registry_client=self.client)
        report = pipeline.run_pipeline(str(self.test_file))

        assert report["match_summary"]["total_processed"] == len(self.test_data)
        assert [call[:2] for call in self.client.calls if call[2]] == [
            ("Jane", "Doe"), ("John", "Smith"), ("Maria", "Garcia"), ("Ann", "Lee"),
        ]

    def test_missing_column_stops_before_matching(self):
        """Validation failures happen before any registry call."""
        self.test_data.drop(columns=["Zip"]).to_csv(self.test_file, index=False)
        pipeline = NPIMatchPipeline(str(self.config_path), registry_client=self.client)

        with pytest.raises(InputValidationError):
            pipeline.run_pipeline(str(self.test_file), output_path=str(self.output_path))

        assert self.client.calls == []
        assert not (self.output_path / "matches.csv").exists()

    def test_row_failure_keeps_prior_results(self):
        """An unexpected row error halts processing and saves earlier rows."""
        client = FakeRegistryClient(self.client.responses, explode_on=["Garcia"])
        pipeline = NPIMatchPipeline(str(self.config_path), registry_client=client)

        with pytest.raises(RowProcessingError) as exc_info:
            pipeline.run_pipeline(str(self.test_file), output_path=str(self.output_path))

        assert exc_info.value.row_index == 2
        assert len(exc_info.value.partial_results) == 2

        partial_df = pd.read_csv(self.output_path / "matches.csv", dtype=str)
        assert list(partial_df["First Name"]) == ["Jane", "John"]
        assert ("Ann", "Lee", True) not in client.calls

    def test_result_columns_override_input(self):
        """Input columns named like result columns are replaced."""
        self.test_data["NPI"] = "stale"
        self.test_data.to_csv(self.test_file, index=False)
        pipeline = NPIMatchPipeline(str(self.config_path), registry_client=self.client)

        pipeline.run_pipeline(str(self.test_file), output_path=str(self.output_path))

        output_df = pd.read_csv(self.output_path / "matches.csv", dtype=str)
        assert list(output_df.columns).count("NPI") == 1
        assert "stale" not in set(output_df["NPI"].dropna())

    def test_invalid_config_rejected(self):
        """A configuration that fails validation stops the pipeline."""
        self.config_path.write_text("registry:\n  limit: -5\n")
        with pytest.raises(ValueError):
            NPIMatchPipeline(str(self.config_path), registry_client=self.client)

    def test_injected_client_left_open(self):
        """A client passed in by the caller is not closed by the run."""
        pipeline = NPIMatchPipeline(str(self.config_path), registry_client=self.client)
        pipeline.run_pipeline(str(self.test_file))
        assert self.client.closed is False

    def test_owned_client_closed(self):
        """A client the pipeline built itself is closed, even on failure."""
        self.test_data.drop(columns=["Zip"]).to_csv(self.test_file, index=False)
        with patch("npi_match.pipeline.run_npi_match.NPPESClient", return_value=self.client):
            pipeline = NPIMatchPipeline(str(self.config_path))

        with pytest.raises(InputValidationError):
            pipeline.run_pipeline(str(self.test_file))
        assert self.client.closed is True

    def run_cli(self, *extra_args):
        """Invoke the command-line entry point with a fake registry client."""
        argv = ["npi-match", "--input", str(self.test_file),
                "--output", str(self.output_path), "--config", str(self.config_path), *extra_args]
        with patch.object(sys, "argv", argv), \
                patch("npi_match.pipeline.run_npi_match.NPPESClient", return_value=self.client):
            main()

    def test_cli_writes_output(self, capsys):
        """A successful command-line run writes results and prints the summary."""
        self.run_cli()

        output_df = pd.read_csv(self.output_path / "matches.csv", dtype=str, keep_default_na=False)
        assert list(output_df["Match Method"]) == ["EXACT_WITH_ZIP", "EXACT", "WILDCARD", "NO_MATCH"]
        assert (Path(self.temp_dir) / "logs").is_dir()
        assert "Providers matched: 3 (75%)" in capsys.readouterr().out

    def test_cli_missing_column_exits(self):
        """Invalid input exits with status 1 before any registry call."""
        self.test_data.drop(columns=["Zip"]).to_csv(self.test_file, index=False)

        with pytest.raises(SystemExit) as exc_info:
            self.run_cli()

        assert exc_info.value.code == 1
        assert self.client.calls == []
        assert not (self.output_path / "matches.csv").exists()

    def test_cli_row_failure_exits(self):
        """An unexpected row error exits with status 1 after saving earlier rows."""
        self.client.explode_on = {"Garcia"}

        with pytest.raises(SystemExit) as exc_info:
            self.run_cli("--log-level", "DEBUG")

        assert exc_info.value.code == 1
        partial_df = pd.read_csv(self.output_path / "matches.csv", dtype=str)
        assert list(partial_df["First Name"]) == ["Jane", "John"]

    def teardown_method(self):
        """Cleanup test fixtures."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)


if __name__ == "__main__":
    pytest.main([__file__])
