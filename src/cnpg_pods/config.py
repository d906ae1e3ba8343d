"""
Settings for the pod builders.

Every fixed name, path and port that ends up inside a generated Pod lives
here, in one frozen model. The builders receive a PodSettings instance at
construction time instead of reading scattered literals, so a deployment
can vary them (for instance the operator image) without touching the
builder logic.

The values in DEFAULT_SETTINGS form a protocol with the instance manager
running inside the containers and must stay byte-for-byte stable.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cnpg_pods import __version__

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration and Constants
# ============================================================================

OPERATOR_IMAGE_REPOSITORY = "quay.io/enterprisedb/cloud-native-postgresql"
DEFAULT_POSTGRES_IMAGE = "quay.io/enterprisedb/postgresql:12"

# Searched in order by load_settings() when no explicit path is given
SETTINGS_SEARCH_PATHS = [
    "/etc/cnpg-pods/settings.yaml",
    "/config/settings.yaml",
    "./settings.yaml",
]


def get_default_operator_image_name() -> str:
    """Return the operator image matching this package version."""
    return f"{OPERATOR_IMAGE_REPOSITORY}:{__version__}"


class PodSettings(BaseModel):
    """Immutable table of the literals synthesized into every Pod."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Labels and annotations
    cluster_label_name: str = "postgresql"
    role_label_name: str = "role"
    role_label_primary: str = "primary"
    serial_annotation_name: str = "k8s.2ndq.io/nodeSerial"

    # Images
    operator_image: str = Field(default_factory=get_default_operator_image_name)
    postgres_image: str = DEFAULT_POSTGRES_IMAGE

    # Container names
    postgres_container_name: str = "postgres"
    bootstrap_controller_container_name: str = "bootstrap-controller"
    bootstrap_instance_container_name: str = "bootstrap-instance"
    bootstrap_replica_container_name: str = "bootstrap-replica"

    # Volume names
    data_volume_name: str = "pgdata"
    config_volume_name: str = "config"
    superuser_secret_volume_name: str = "superuser-secret"
    app_secret_volume_name: str = "app-secret"
    controller_volume_name: str = "controller"

    # Mount paths
    data_mount_path: str = "/var/lib/postgresql/data"
    pgdata_path: str = "/var/lib/postgresql/data/pgdata"
    config_mount_path: str = "/etc/configuration"
    superuser_secret_mount_path: str = "/etc/superuser-secret"
    app_secret_mount_path: str = "/etc/app-secret"
    controller_mount_path: str = "/controller"

    # Files read by the instance manager
    superuser_password_file: str = "/etc/superuser-secret/password"
    app_password_file: str = "/etc/app-secret/password"
    hba_rules_file: str = "/etc/configuration/postgresHBA"
    postgresql_config_file: str = "/etc/configuration/postgresConfiguration"

    # Instance manager binary
    operator_manager_path: str = "/manager"
    instance_manager_path: str = "/controller/manager"

    # Probes
    status_port: int = 8000
    readiness_probe_path: str = "/readyz"
    liveness_probe_path: str = "/healthz"
    probe_timeout_seconds: int = 5

    # Scheduling and security
    default_topology_key: str = "kubernetes.io/hostname"
    anti_affinity_weight: int = 100
    postgres_user: int = 26
    postgres_group: int = 26


DEFAULT_SETTINGS = PodSettings()


# ============================================================================
# Loading
# ============================================================================

def _read_settings_file(config_path: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Read the first settings file found.

    Searches in order:
    1. Provided config_path
    2. /etc/cnpg-pods/settings.yaml (default Kubernetes ConfigMap mount)
    3. /config/settings.yaml
    4. ./settings.yaml

    Returns:
        Dict with settings overrides or None if no usable file was found
    """
    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.extend(SETTINGS_SEARCH_PATHS)

    for path_str in search_paths:
        path = Path(path_str)
        if not (path.exists() and path.is_file()):
            continue

        logger.info(f"Loading pod settings from: {path}")
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read settings file {path}: {e}")
            return None

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file {path}: expected a mapping")
            return None
        return data

    return None


def load_settings(config_path: Optional[str] = None) -> PodSettings:
    """
    Build PodSettings from an optional YAML file plus environment overrides.

    Environment variables take precedence over the file:
    - OPERATOR_IMAGE_NAME: image used by the bootstrap-controller init container
    - POSTGRES_IMAGE_NAME: PostgreSQL image used when a cluster sets none

    A missing or malformed file is never fatal; the defaults are used.

    Args:
        config_path: Optional explicit path to a settings file

    Returns:
        The resulting PodSettings
    """
    overrides = _read_settings_file(config_path) or {}

    operator_image = os.getenv("OPERATOR_IMAGE_NAME")
    if operator_image:
        overrides["operator_image"] = operator_image

    postgres_image = os.getenv("POSTGRES_IMAGE_NAME")
    if postgres_image:
        overrides["postgres_image"] = postgres_image

    if not overrides:
        return DEFAULT_SETTINGS

    try:
        return PodSettings(**overrides)
    except ValidationError as e:
        logger.warning(f"Invalid pod settings, using defaults: {e}")
        return DEFAULT_SETTINGS
