"""
Single-cell copy-number calling pipeline - main entry point.

The entry point holds no business logic; all processing is delegated to
the application services.
"""

import sys
from typing import List, Optional

from sccnv.application.pipeline_service import PipelineService
from sccnv.application.qc_service import QCService
from sccnv.domain.models import PipelineConfig
from sccnv.domain.services.qc_filter import QCFilter
from sccnv.infrastructure.argument_parser import ArgumentParser
from sccnv.infrastructure.logger import Logger


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point - no business logic"""
    logger = Logger()

    try:
        logger.log_step("Parsing", "Command line arguments")
        parser = ArgumentParser()
        config = parser.parse_arguments(argv)
        if config.log_file:
            logger.add_file_handler(config.log_file)

        if isinstance(config, PipelineConfig):
            logger.log_step("Starting", "Copy-number calling pipeline")
            PipelineService(config, logger=logger).process()
        else:
            logger.log_step("Starting", "Quality control")
            qc_filter = QCFilter(config.min_read_count, config.percentile_fraction, logger)
            QCService(qc_filter=qc_filter, logger=logger).process(config)

        logger.log_success("Processing completed successfully")
        return 0

    except KeyboardInterrupt:
        logger.log_warning("Processing interrupted by user")
        return 130

    except Exception as e:
        logger.log_error(e, "Main execution")
        return 1


if __name__ == "__main__":
    sys.exit(main())
