"""
Organization credential resolution.

Maps an organization id to the InfluxDB endpoint/token it queries,
substituting the process-wide default for blank values.
"""

import logging
from dataclasses import dataclass

from ...core.config import InfluxSettings
from ...core.errors import ConfigurationError
from ...models import Organization

logger = logging.getLogger("sensorboard.queries")


@dataclass(frozen=True)
class InfluxCredentials:
    url: str
    token: str
    org: str

    def __repr__(self) -> str:
        return f"InfluxCredentials(url={self.url!r}, org={self.org!r}, token=***)"


def resolve_credentials(organization_id: int, defaults: InfluxSettings) -> InfluxCredentials:
    """
    Resolve the endpoint for an organization.

    Raises:
        ConfigurationError: unknown organization, or no url/token after
            falling back to the defaults
    """
    if organization_id is None:
        raise ConfigurationError("Organization id is required")

    organization = Organization.get_or_none(Organization.id == organization_id)
    if organization is None:
        raise ConfigurationError(f"Unknown organization: {organization_id}")

    url = (organization.influx_url or "").strip() or defaults.url
    own_token = (organization.influx_token or "").strip()
    token = own_token or defaults.token

    if not url or not token:
        raise ConfigurationError(
            f"No InfluxDB endpoint configured for organization '{organization.name}'"
        )

    org = organization.name
    if not own_token and defaults.org:
        org = defaults.org

    logger.debug(f"Resolved credentials for organization {organization_id}: url={url}, "
                 f"default_token={not own_token}")
    return InfluxCredentials(url=url, token=token, org=org)
