"""Request-scoped helpers shared by the route blueprints."""

from flask import current_app

from lingoshield.config import PipelineConfig, build_pipeline_config, load_config


def get_store():
    """The key-value store the application was created with."""
    return current_app.config["STORE"]


def get_config():
    return load_config(get_store())


def get_pipeline_config(source_language=None) -> PipelineConfig:
    return build_pipeline_config(get_store(), source_language)
