import uvicorn

from app.main import app  # noqa: F401
from app.platform.config import settings


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
