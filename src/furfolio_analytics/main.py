import argparse
import logging
import os
import sys
from datetime import datetime

from loguru import logger as loguru_logger

from furfolio_analytics.config import load_config
from furfolio_analytics.output import ReportGenerator
from furfolio_analytics.pipeline import AnalyticsPipeline
from furfolio_analytics.utils import standardize_datetime


# Configure logging
def setup_logging(log_level='INFO'):
    """Set up logging configuration and return the log file paths.

    Ingestion and output log through loguru into a separate file.
    """
    log_level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }

    level = log_level_map.get(log_level.upper(), logging.INFO)

    # Ensure logs directory exists
    os.makedirs('logs', exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = f'logs/analytics_{stamp}.log'
    loguru_file = f'logs/analytics_{stamp}_ingestion.log'

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file)
        ]
    )

    # Ingestion and output log through loguru
    loguru_logger.remove()
    loguru_logger.add(sys.stderr, level=log_level.upper())
    loguru_logger.add(loguru_file, level=log_level.upper())

    return {'pipeline': log_file, 'ingestion': loguru_file}


logger = logging.getLogger(__name__)


def run_pipeline(args):
    """Run the analytics pipeline and write its outputs."""
    try:
        config = load_config(args.config)

        # Override config with command line arguments if provided
        overrides = {}
        if args.input_dir:
            overrides['input_dir'] = args.input_dir
        if args.output_dir:
            overrides['output_dir'] = args.output_dir
        if overrides:
            config = config.model_copy(update=overrides)

        now = None
        if args.as_of:
            now = standardize_datetime(args.as_of)
            if now is None:
                raise ValueError(f"Invalid --as-of date: {args.as_of}")

        logger.info(f"Initializing pipeline {config.name} {config.version}")
        pipeline = AnalyticsPipeline(config, now=now)
        report = pipeline.process()

        generator = ReportGenerator(config.output_dir, config.output)
        written = generator.generate(report, pipeline.churn_scores, pipeline.processing_statistics)

        stats = pipeline.processing_statistics
        logger.info(f"Processed {sum(stats['entities_processed'].values())} records")
        logger.info(f"Processing time: {stats['duration_seconds']:.2f} seconds")
        for kind, path in written.items():
            logger.info(f"Wrote {kind}: {path}")

        return 1 if stats['errors'] else 0

    except (OSError, ValueError) as e:
        logger.error(f"Execution failed: {e}", exc_info=True)
        return 1


def main():
    """Main entry point for Furfolio analytics."""
    parser = argparse.ArgumentParser(description='Furfolio Analytics')

    parser.add_argument(
        '--config',
        default='config/analytics.yaml',
        help='Path to analytics configuration file'
    )

    parser.add_argument(
        '--input-dir',
        help='Directory containing the CSV exports (overrides config)'
    )

    parser.add_argument(
        '--output-dir',
        help='Directory for output files (overrides config)'
    )

    parser.add_argument(
        '--as-of',
        help='Reference date for time-based metrics, defaults to now'
    )

    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level'
    )

    args = parser.parse_args()
    setup_logging(args.log_level)
    return run_pipeline(args)


if __name__ == "__main__":
    sys.exit(main())
