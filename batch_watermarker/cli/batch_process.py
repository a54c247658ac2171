import os
import logging
import sys

from dotenv import load_dotenv

from ..config import PipelineConfig
from ..errors import WatermarkerError
from ..pipeline.batch_processor import BatchProcessor

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )


def main() -> None:
    """
    Watermark everything under INPUT_DIR into OUTPUT_DIR.
    Exits 1 if the run aborted or any file failed.
    """
    # Load environment variables first
    load_dotenv()
    configure_logging()

    try:
        config = PipelineConfig.from_env()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    try:
        summary = BatchProcessor(config).run()
    except WatermarkerError as e:
        logger.error(f"Batch aborted: {e}")
        sys.exit(1)
    except OSError as e:
        logger.error(f"Batch aborted: {e}")
        sys.exit(1)

    sys.exit(1 if summary.has_failures else 0)


if __name__ == "__main__":
    main()
