"""
Publish stage: build the site from render artifacts and deploy it.
"""

from pathlib import Path
from typing import Mapping, Optional

from omegaconf import DictConfig

from cvpress.contexts.publishing.deployer import DeploymentTarget, PublishResult, deploy_site
from cvpress.contexts.publishing.site_builder import build_site, labels_for
from cvpress.contexts.rendering.metadata import BuildMetadata
from cvpress.utils.settings import project_path


def target_from_settings(settings: DictConfig) -> DeploymentTarget:
    target = settings.publish.target
    return DeploymentTarget(
        name=target.name,
        root=project_path(target.root),
        base_url=target.base_url,
    )


def publish_artifacts(
    artifacts: Mapping[str, Path],
    settings: DictConfig,
    target: Optional[DeploymentTarget] = None,
    site_dir: Optional[Path] = None,
    metadata: Optional[BuildMetadata] = None,
    run_id: Optional[str] = None,
) -> PublishResult:
    """
    Build the site for *artifacts* and deploy it.

    Args:
        artifacts: Language code -> rendered PDF
        settings: Pipeline settings (languages, publish.*)
        target: Deployment target (default: from settings)
        site_dir: Where to build the site (default: settings paths.site)
        metadata: Build metadata for the landing page footer
        run_id: Pipeline run to record deployment events under

    Returns:
        PublishResult carrying the site's public base URL
    """
    target = target or target_from_settings(settings)
    site_dir = Path(site_dir) if site_dir else project_path(settings.paths.site)

    build_site(
        artifacts,
        site_dir,
        labels=labels_for(settings.languages),
        title=settings.project.title,
        default_language=settings.project.default_language,
        auto_detect_language=bool(settings.publish.auto_detect_language),
        metadata=metadata,
    )
    return deploy_site(
        site_dir,
        target,
        policy=settings.publish.policy,
        lock_timeout_s=float(settings.publish.lock_timeout_s),
        run_id=run_id,
    )
