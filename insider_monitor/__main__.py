import uvicorn

from .settings import settings

APP_PATH = "insider_monitor.main:app"


def run() -> None:
    # Logging is configured when the app module loads; uvicorn must not replace it.
    uvicorn.run(APP_PATH, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
