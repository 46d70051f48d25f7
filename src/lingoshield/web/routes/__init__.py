"""Route blueprints for the web application."""

from .extract import extract_bp
from .jobs import jobs_bp
from .settings import settings_bp
from .subtitles import subtitles_bp
from .tmx import tmx_bp

__all__ = [
    "extract_bp",
    "jobs_bp",
    "settings_bp",
    "subtitles_bp",
    "tmx_bp",
]
