import uvicorn

from weather_gateway.config import load_settings


def main() -> None:
    """Run the FastAPI application with uvicorn."""
    settings = load_settings()
    uvicorn.run(
        "weather_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
