"""
Cluster specification models.

These models describe the read-only input of the pod builders: a PostgreSQL
cluster as declared in a CloudNativePG-style ``Cluster`` manifest. Field names
are snake_case in Python, and the camelCase keys used in manifests are
accepted as aliases, so a manifest loaded from YAML can be validated as-is.

The models are frozen. Pods built from a cluster may share references to its
fields (image name, resources, affinity), so a cluster must not change once
it has been handed to a builder.
"""

import logging
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cnpg_pods.config import DEFAULT_POSTGRES_IMAGE

logger = logging.getLogger(__name__)

DEFAULT_MAX_START_DELAY = 30
DEFAULT_MAX_STOP_DELAY = 30


class _SpecModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# Spec Sections
# ============================================================================

class SecretKeySelector(_SpecModel):
    """Reference to one key of a Secret in the cluster namespace."""
    name: str = Field(..., description="Name of the Secret.")
    key: str = Field(..., description="Key inside the Secret.")


class S3Credentials(_SpecModel):
    """Object storage credentials, given as Secret references."""
    access_key_id_reference: SecretKeySelector = Field(
        ...,
        alias="accessKeyId",
        description="Secret key holding the AWS access key ID."
    )
    secret_access_key_reference: SecretKeySelector = Field(
        ...,
        alias="secretAccessKey",
        description="Secret key holding the AWS secret access key."
    )


class BackupConfiguration(_SpecModel):
    """Where and how base backups and WAL files are archived."""
    destination_path: str = Field(
        "",
        description="Object storage URL, e.g. s3://bucket/path."
    )
    endpoint_url: Optional[str] = Field(
        None,
        alias="endpointURL",
        description="Custom S3-compatible endpoint."
    )
    s3_credentials: S3Credentials


class ApplicationConfiguration(_SpecModel):
    """The application database created at bootstrap."""
    database: str = Field("app", description="Application database name.")
    owner: str = Field("app", description="Owner of the application database.")
    secret: Optional[str] = Field(
        None,
        description="Secret with the owner credentials. Defaults to <cluster>-app."
    )


class AffinityConfiguration(_SpecModel):
    """Pod placement preferences."""
    enable_pod_anti_affinity: bool = False
    topology_key: str = ""


class StorageConfiguration(_SpecModel):
    """Persistent storage for PGDATA. Absent means ephemeral storage."""
    size: str = "1Gi"
    storage_class: Optional[str] = None


class ResourceRequirements(_SpecModel):
    """Compute resources passed verbatim to the postgres container."""
    # Quantities such as `cpu: 2` arrive as numbers from YAML
    model_config = ConfigDict(coerce_numbers_to_str=True)

    limits: Optional[Dict[str, str]] = None
    requests: Optional[Dict[str, str]] = None


class ClusterSpec(_SpecModel):
    """Desired state of a PostgreSQL cluster."""
    instances: int = Field(1, ge=1)
    image_name: Optional[str] = Field(
        None,
        description="PostgreSQL container image. Defaults to the configured image."
    )
    image_pull_secret: Optional[str] = Field(
        None,
        description="Secret used to pull the PostgreSQL and operator images."
    )
    application_configuration: ApplicationConfiguration = Field(
        default_factory=ApplicationConfiguration,
        alias="applicationConfiguration"
    )
    superuser_secret: Optional[str] = Field(
        None,
        description="Secret with the superuser password. Defaults to <cluster>-superuser."
    )
    storage: Optional[StorageConfiguration] = None
    backup: Optional[BackupConfiguration] = None
    affinity: AffinityConfiguration = Field(default_factory=AffinityConfiguration)
    resources: ResourceRequirements = Field(default_factory=ResourceRequirements)
    max_start_delay: Optional[int] = Field(
        None,
        ge=0,
        description="Seconds allowed for an instance to start. Default 30."
    )
    max_stop_delay: Optional[int] = Field(
        None,
        ge=0,
        description="Seconds allowed for a smart shutdown. Default 30."
    )


# ============================================================================
# Cluster
# ============================================================================

class Cluster(_SpecModel):
    """A PostgreSQL cluster together with its computed names."""
    name: str = Field(..., min_length=1)
    namespace: str = "default"
    spec: ClusterSpec = Field(default_factory=ClusterSpec)

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]) -> "Cluster":
        """
        Build a Cluster from a manifest mapping.

        Args:
            manifest: A ``Cluster`` resource with ``metadata`` and ``spec``

        Raises:
            ValueError: If the metadata section is not a mapping
            pydantic.ValidationError: If the manifest does not describe a cluster
        """
        metadata = manifest.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("Cluster metadata must be a mapping")
        data = {
            "name": metadata.get("name"),
            "namespace": metadata.get("namespace") or "default",
            "spec": manifest.get("spec") or {},
        }
        return cls.model_validate(data)

    def get_image_name(self, default: str = DEFAULT_POSTGRES_IMAGE) -> str:
        return self.spec.image_name or default

    def get_image_pull_secret(self) -> str:
        return self.spec.image_pull_secret or ""

    def is_using_persistent_storage(self) -> bool:
        return self.spec.storage is not None

    def get_service_read_write_name(self) -> str:
        """Service pointing at the current primary."""
        return f"{self.name}-rw"

    def get_service_read_name(self) -> str:
        return f"{self.name}-r"

    def get_service_any_name(self) -> str:
        """Headless service covering every instance; used as Pod subdomain."""
        return f"{self.name}-any"

    def get_superuser_secret_name(self) -> str:
        return self.spec.superuser_secret or f"{self.name}-superuser"

    def get_application_secret_name(self) -> str:
        return self.spec.application_configuration.secret or f"{self.name}-app"

    def get_max_start_delay(self) -> int:
        if self.spec.max_start_delay is None:
            return DEFAULT_MAX_START_DELAY
        return self.spec.max_start_delay

    def get_max_stop_delay(self) -> int:
        if self.spec.max_stop_delay is None:
            return DEFAULT_MAX_STOP_DELAY
        return self.spec.max_stop_delay


def load_cluster_manifest(text: str) -> Cluster:
    """
    Parse a YAML ``Cluster`` manifest.

    Raises:
        yaml.YAMLError: If the text is not valid YAML
        ValueError: If the document is not a mapping
        pydantic.ValidationError: If the manifest does not describe a cluster
    """
    manifest = yaml.safe_load(text)
    if not isinstance(manifest, dict):
        raise ValueError("Cluster manifest must be a YAML mapping")

    kind = manifest.get("kind")
    if kind and kind != "Cluster":
        logger.warning(f"Manifest kind is '{kind}', reading it as a Cluster anyway")

    return Cluster.from_manifest(manifest)
