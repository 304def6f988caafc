"""
Main pipeline orchestrator for NPI Match.

Coordinates the matching run from input ingestion through validation,
sequential registry matching, joining results onto the input rows,
reporting and output.
"""

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import pandas as pd

from ..config import DEFAULT_CONFIG_PATH, load_config, validate_config
from ..ingestion.input_loader import load_input, to_input_records
from ..ingestion.schema_validator import InputValidationError, validate_input_data
from ..match.matcher import NPPESMatcher
from ..models import RESULT_COLUMNS, InputRecord, MatchResult
from ..registry.nppes_client import NPPESClient
from ..reporting.summary import format_summary, summarize_results

logger = logging.getLogger(__name__)


class RowProcessingError(RuntimeError):
    """
    Raised when a row fails for a reason other than a registry lookup.

    Carries the results produced before the failing row so they can still
    be saved.
    """

    def __init__(self, row_index: int, cause: Exception, partial_results: List[MatchResult]):
        super().__init__(f"Error processing provider at row {row_index}: {cause}")
        self.row_index = row_index
        self.cause = cause
        self.partial_results = partial_results


class NPIMatchPipeline:
    """
    Main pipeline orchestrator for NPI Match.

    Rows are matched strictly one at a time; the registry client's
    rate-limit delay follows every registry call.
    """

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH,
                 registry_client: Optional[NPPESClient] = None):
        """
        Initialize pipeline with configuration.

        Args:
            config_path: Path to configuration file
            registry_client: Registry client to use (built from config if omitted)
        """
        self.config_path = config_path
        self.config = load_config(config_path)
        if not validate_config(self.config):
            raise ValueError(f"Invalid configuration: {config_path}")

        # Only a client built here is closed when the run ends
        self._owns_client = registry_client is None
        self.client = registry_client or NPPESClient(self.config.get("registry", {}))
        self.matcher = NPPESMatcher(self.client)

        # Pipeline state
        self.pipeline_start_time = None
        self.stage_times = {}

        logger.info("Initialized NPI Match pipeline")

    def _start_stage_timer(self, stage_name: str):
        """Start timing for a pipeline stage."""
        self.stage_times[stage_name] = time.time()
        logger.info(f"Starting stage: {stage_name}")

    def _end_stage_timer(self, stage_name: str):
        """End timing for a pipeline stage."""
        if stage_name in self.stage_times:
            duration = time.time() - self.stage_times[stage_name]
            self.stage_times[stage_name] = duration
            logger.info(f"Completed stage: {stage_name} in {duration:.2f} seconds")

    def ingest_data(self, input_path: str) -> pd.DataFrame:
        """
        Ingest provider data from a local file.

        Args:
            input_path: Path to input data

        Returns:
            DataFrame with ingested data
        """
        self._start_stage_timer("data_ingestion")

        try:
            df = load_input(input_path)
            self._end_stage_timer("data_ingestion")
            return df

        except Exception as e:
            logger.error(f"Data ingestion failed: {e}")
            raise

    def validate_data(self, df: pd.DataFrame) -> Dict[str, Any]:
        """
        Validate provider data against the required columns.

        Args:
            df: Input DataFrame

        Returns:
            Validation summary
        """
        self._start_stage_timer("data_validation")

        summary = validate_input_data(df, self.config.get("input", {}))
        logger.info(f"Found {summary['total_rows']} provider records")

        self._end_stage_timer("data_validation")
        return summary

    def match_providers(self, records: List[InputRecord]) -> List[MatchResult]:
        """
        Match every record against the registry, in order.

        Args:
            records: Input records

        Returns:
            One MatchResult per record, in the same order

        Raises:
            RowProcessingError: If a row fails unexpectedly; prior results are attached
        """
        self._start_stage_timer("provider_matching")

        results = []
        total = len(records)

        for position, record in enumerate(records):
            progress_pct = round(position / total * 100)
            logger.info(f"Processing provider {position + 1}/{total} ({progress_pct}%): "
                        f"{record.display_name}")

            try:
                result = self.matcher.match_record(record)
            except Exception as e:
                logger.error(f"Error during processing of row {record.index}: {e}")
                raise RowProcessingError(record.index, e, results) from e

            logger.debug(f"Row {record.index}: {result.method.value}, "
                         f"{result.total_matches} candidates")
            results.append(result)

        self._end_stage_timer("provider_matching")
        return results

    def join_results(self, input_df: pd.DataFrame, results: List[MatchResult]) -> pd.DataFrame:
        """
        Join match results back onto the original input rows.

        Result columns win when an input column has the same name. When
        fewer results than rows are given, only the processed rows are kept.

        Args:
            input_df: Original input DataFrame
            results: Match results, in input order

        Returns:
            Combined DataFrame
        """
        results_df = pd.DataFrame([r.to_dict() for r in results], columns=RESULT_COLUMNS)

        original_df = input_df.iloc[:len(results)].reset_index(drop=True)
        overlap = [column for column in original_df.columns if column in RESULT_COLUMNS]
        if overlap:
            logger.warning(f"Input columns overwritten by results: {', '.join(overlap)}")
            original_df = original_df.drop(columns=overlap)

        return pd.concat([original_df, results_df], axis=1)

    def generate_report(self, results: List[MatchResult]) -> Dict[str, Any]:
        """
        Generate pipeline report.

        Args:
            results: Match results

        Returns:
            Report dictionary
        """
        results_df = pd.DataFrame([r.to_dict() for r in results], columns=RESULT_COLUMNS)
        summary = summarize_results(results_df, failed_requests=self.client.failed_requests)

        return {
            "pipeline_execution": {
                "start_time": self.pipeline_start_time,
                "end_time": datetime.now(),
                "stage_times": self.stage_times,
                "total_duration": time.time() - self.pipeline_start_time if self.pipeline_start_time else 0
            },
            "registry": {
                "requests": self.client.request_count,
                "failed_requests": self.client.failed_requests
            },
            "match_summary": summary
        }

    def save_results(self, result_df: pd.DataFrame, output_path: str) -> Path:
        """Save joined results as CSV under the output directory."""
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        output_file = output_dir / self.config.get("output", {}).get(
            "filename", "providers_with_npi_matches.csv")
        result_df.to_csv(output_file, index=False)

        logger.info(f"Results saved to {output_file}")
        return output_file

    def run_pipeline(self, input_path: str,
                     output_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Run the complete NPI Match pipeline.

        Args:
            input_path: Path to input data
            output_path: Directory for output files (optional)

        Returns:
            Pipeline execution report
        """
        self.pipeline_start_time = time.time()
        logger.info(f"Starting NPI Match pipeline for {input_path}")

        try:
            # 1. Ingestion
            input_df = self.ingest_data(input_path)

            # 2. Validation, before any registry call
            self.validate_data(input_df)
            records = to_input_records(input_df, self.config.get("input", {}))

            # 3. Matching
            try:
                results = self.match_providers(records)
            except RowProcessingError as e:
                if output_path and e.partial_results:
                    self.save_results(self.join_results(input_df, e.partial_results), output_path)
                    logger.warning(f"Saved {len(e.partial_results)} results produced before the failure")
                raise

            # 4. Join and report
            result_df = self.join_results(input_df, results)
            report = self.generate_report(results)

            # 5. Save results if output path specified
            if output_path:
                report["output_file"] = str(self.save_results(result_df, output_path))

            total_duration = time.time() - self.pipeline_start_time
            logger.info(f"Pipeline completed successfully in {total_duration:.2f} seconds")

            return report

        finally:
            if self._owns_client:
                self.client.close()


def main():
    """Main entry point for the NPI Match pipeline."""
    parser = argparse.ArgumentParser(description="Match provider records to NPPES NPI numbers")
    parser.add_argument("--input", required=True, help="Input CSV path")
    parser.add_argument("--output", default="output", help="Output directory path")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Configuration file path")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args()

    logging_config = load_config(args.config).get("logging", {})
    log_level = args.log_level or str(logging_config.get("level", "INFO")).upper()

    # Ensure log directory exists
    log_dir = Path(logging_config.get("log_dir", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / "npi_match.log")
        ]
    )

    try:
        pipeline = NPIMatchPipeline(args.config)
        report = pipeline.run_pipeline(input_path=args.input, output_path=args.output)

        print("\n" + format_summary(report["match_summary"]))
        print(f"Output: {report.get('output_file')}")
        print(f"Total Duration: {report['pipeline_execution']['total_duration']:.2f} seconds")

    except InputValidationError as e:
        logger.error(f"Invalid input: {e}")
        sys.exit(1)
    except RowProcessingError as e:
        logger.error(f"Processing stopped at row {e.row_index}: {e.cause}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
