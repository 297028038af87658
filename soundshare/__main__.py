"""Run the API with uvicorn using HOST / PORT from the environment."""

import uvicorn

from .config import get_config


def main() -> None:
    config = get_config()
    uvicorn.run("soundshare.app:app", host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
