"""
Entrypoint for the S3 upload gate.

Configuration is loaded once from config.json and the environment; a missing
required setting aborts startup.
"""
import logging

from upload_gate.application import create_app
from upload_gate.config import load_config, log_config_summary
from upload_gate.errors import ConfigError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    import uvicorn

    try:
        config = load_config()
    except ConfigError as exc:
        raise SystemExit(f"Refusing to start: {exc}")

    log_config_summary(config)
    logger.info("starting server on port %s", config.port)
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.port)


if __name__ == "__main__":
    main()
