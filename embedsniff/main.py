import uvicorn

from embedsniff.core.config import Settings
from embedsniff.core.logs import configure_logging


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    # uvicorn turns SIGINT/SIGTERM into a lifespan shutdown, which closes the browser
    uvicorn.run("embedsniff.api.main:app", host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
