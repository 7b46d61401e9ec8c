import uvicorn

from .core.config import settings


def main():
    uvicorn.run("castarr.main:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
