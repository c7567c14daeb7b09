"""
Pipeline settings.

Settings come from three layers, later layers winning:
1. Built-in defaults (DEFAULT_SETTINGS)
2. config/pipeline.yaml (or the path given to load_settings)
3. CVPRESS_* environment variables (a .env file is honoured via python-dotenv)
"""

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

from cvpress.exceptions import ConfigurationError

load_dotenv()
PROJECT_ROOT = Path(os.getenv("PROJECT_ROOT", Path.cwd()))
SETTINGS_FILE = Path(os.getenv("CVPRESS_SETTINGS", PROJECT_ROOT / "config" / "pipeline.yaml"))
RENDERCV_EXECUTABLE = os.getenv("RENDERCV_EXECUTABLE", "rendercv")

DEPLOY_POLICIES = ("queue", "preempt")
RELEASE_BACKENDS = ("local", "github")

DEFAULT_SETTINGS = {
    "project": {
        "title": "Curriculum Vitae",
        "default_language": "en",
    },
    "languages": {
        "en": "English",
        "pt": "Português",
    },
    "paths": {
        "descriptions": "data/cv",
        "render_output": "outs/render",
        "site": "outs/site",
    },
    "render": {
        "executable": RENDERCV_EXECUTABLE,
        "suppress_html": True,
        "suppress_markdown": True,
        "suppress_png": True,
        "timeout_s": None,
    },
    "publish": {
        "auto_detect_language": False,
        "policy": "queue",
        "lock_timeout_s": 600,
        "target": {
            "name": "github-pages",
            "root": "outs/deploy/github-pages",
            "base_url": "http://localhost:8000",
        },
    },
    "release": {
        "backend": "local",
        "store_path": "outs/releases",
        "repository": "",
        "api_url": "https://api.github.com",
        "uploads_url": "https://uploads.github.com",
    },
    "triggers": {
        "default_branch": "main",
        # Repository path that changed-file lists from CI are matched against.
        # Independent of paths.descriptions, which may be absolute on the runner.
        "descriptions_dir": "data/cv",
        "tag_pattern": r"^v\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?$",
    },
}

# Environment variable -> dotted settings key
ENV_OVERRIDES = {
    "CVPRESS_RENDERER": "render.executable",
    "CVPRESS_BASE_URL": "publish.target.base_url",
    "CVPRESS_DEPLOY_ROOT": "publish.target.root",
    "CVPRESS_DEPLOY_TARGET": "publish.target.name",
    "CVPRESS_DEPLOY_POLICY": "publish.policy",
    "CVPRESS_AUTO_DETECT_LANGUAGE": "publish.auto_detect_language",
    "CVPRESS_RELEASE_BACKEND": "release.backend",
    "GITHUB_REPOSITORY": "release.repository",
}


def _env_overrides() -> DictConfig:
    dotlist = [
        f"{key}={os.environ[var]}" for var, key in ENV_OVERRIDES.items() if os.environ.get(var)
    ]
    return OmegaConf.from_dotlist(dotlist)


def load_settings(
    path: Optional[Union[str, Path]] = None,
    use_env: bool = True,
    **overrides,
) -> DictConfig:
    """
    Load pipeline settings.

    Args:
        path: YAML settings file (default: SETTINGS_FILE, skipped when absent)
        use_env: Apply CVPRESS_* environment overrides
        **overrides: Final dotted-key overrides, with "__" standing in for "."
                     (e.g. publish__policy="preempt")

    Returns:
        Merged, validated OmegaConf config

    Raises:
        ConfigurationError: If the merged settings are invalid
    """
    layers = [OmegaConf.create(DEFAULT_SETTINGS)]

    settings_file = Path(path) if path is not None else SETTINGS_FILE
    if settings_file.exists():
        layers.append(OmegaConf.load(settings_file))
    elif path is not None:
        raise ConfigurationError(f"Settings file not found: {settings_file}")

    if use_env:
        layers.append(_env_overrides())

    if overrides:
        layers.append(
            OmegaConf.from_dotlist(
                [f"{key.replace('__', '.')}={value}" for key, value in overrides.items()]
            )
        )

    settings = OmegaConf.merge(*layers)
    validate_settings(settings)
    return settings


def validate_settings(settings: DictConfig) -> None:
    """Raise ConfigurationError on settings the pipeline cannot run with."""
    problems = []

    if not settings.languages:
        problems.append("at least one language must be configured")
    elif settings.project.default_language not in settings.languages:
        problems.append(
            f"default_language '{settings.project.default_language}' is not a configured language"
        )

    if settings.publish.policy not in DEPLOY_POLICIES:
        problems.append(
            f"publish.policy must be one of {DEPLOY_POLICIES}, got '{settings.publish.policy}'"
        )

    if settings.release.backend not in RELEASE_BACKENDS:
        problems.append(
            f"release.backend must be one of {RELEASE_BACKENDS}, got '{settings.release.backend}'"
        )
    elif settings.release.backend == "github" and not settings.release.repository:
        problems.append("release.repository (owner/name) is required for the github backend")

    if not isinstance(settings.publish.auto_detect_language, bool):
        problems.append("publish.auto_detect_language must be true or false")

    watched = str(settings.triggers.descriptions_dir)
    if not watched.strip("/") or Path(watched).is_absolute():
        problems.append(
            f"triggers.descriptions_dir must be a repository-relative path, got '{watched}'"
        )

    if problems:
        raise ConfigurationError("Invalid settings:\n  - " + "\n  - ".join(problems))


def project_path(value: Union[str, Path]) -> Path:
    """Resolve a settings path against PROJECT_ROOT unless it is absolute."""
    path = Path(value)
    return path if path.is_absolute() else PROJECT_ROOT / path


def languages(settings: DictConfig) -> list:
    """Configured language codes in declaration order."""
    return list(settings.languages.keys())
