import os

from fastapi import FastAPI

from .routers import rename

APP_NAME = os.getenv("APP_NAME", "WP Nicename Admin")

app = FastAPI(title=APP_NAME)


@app.get("/api/health")
def health_check():
    """Lightweight endpoint for keep-alive pings."""
    return {"status": "ok"}


app.include_router(rename.router)
