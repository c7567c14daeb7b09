"""
Publishing Context

Responsibilities:
- Builds the static site: a language-selection landing page plus <lang>.pdf files
- Deploys the site to a named target, one deployment in flight per target
- Serves a local preview that follows the landing page's redirect rules

Owns: Site layout, landing page routing, deployment serialization
Never: Renders PDFs or creates releases
"""

from cvpress.contexts.publishing.deployer import (
    DeploymentLock,
    DeploymentTarget,
    PublishResult,
    deploy_site,
)
from cvpress.contexts.publishing.publisher import publish_artifacts, target_from_settings
from cvpress.contexts.publishing.routing import (
    match_language,
    parse_accept_language,
    resolve_route,
)
from cvpress.contexts.publishing.site_builder import SiteBuild, SiteEntry, build_site

__all__ = [
    # Routing
    "resolve_route",
    "match_language",
    "parse_accept_language",
    # Site
    "SiteBuild",
    "SiteEntry",
    "build_site",
    # Deployment
    "DeploymentTarget",
    "DeploymentLock",
    "PublishResult",
    "deploy_site",
    # Stage
    "publish_artifacts",
    "target_from_settings",
]
