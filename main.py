import uvicorn

from app.config import settings
from app.logging_config import setup_logging
from app.webapi.app import create_web_api_app


def main() -> None:
    setup_logging()
    uvicorn.run(
        create_web_api_app(),
        host=settings.WEB_API_HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == '__main__':
    main()
