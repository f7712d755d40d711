"""Main entry point for the tracklog API server"""
import logging
import uvicorn
from tracklog.config import validate_config, API_HOST, API_PORT, LOG_LEVEL

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


def main() -> None:
    """Main application entry point"""
    logger.info("Validating configuration...")
    validate_config()

    logger.info(f"Starting API server on {API_HOST}:{API_PORT}")
    uvicorn.run(
        "tracklog.api.server:create_api_application",
        factory=True,
        host=API_HOST,
        port=API_PORT,
        log_level=LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
