import os

import uvicorn

from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


if __name__ == "__main__":
    setup_logging(level=os.getenv("WEATHERDASH_LOG_LEVEL", "INFO"), job_name="weatherdash")
    if not os.getenv("WEATHERDASH_OPENWEATHER_API_KEY"):
        logger.warning("WEATHERDASH_OPENWEATHER_API_KEY is not set; forecasts will fail to load")

    uvicorn.run(
        "weatherdash.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
