"""Windstarter -- bootstrap a Rails application with batteries included.

Creates a Rails skeleton, adds Devise, Pundit, Sidekiq, friendly_id,
Tailwind and friends, copies the Windstarter boilerplate, configures the
database and commits the result.

Quick usage::

    from windstarter import Config, Pipeline

    pipeline = Pipeline(Config(app_path=Path("my-app")))
    report = await pipeline.run()
"""

from windstarter.config import Answers, Config
from windstarter.pipeline import Pipeline, PipelineReport, Stage

__all__ = [
    "Answers",
    "Config",
    "Pipeline",
    "PipelineReport",
    "Stage",
]

__version__ = "0.1.0"
