import os

import uvicorn

from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


if __name__ == "__main__":
    setup_logging(level=os.getenv("TRIPWX_LOG_LEVEL", "INFO"), job_name="tripweather_api")
    logger.info("Starting trip-weather API")

    uvicorn.run(
        "tripweather.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
        log_config=None,
    )
