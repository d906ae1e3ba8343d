"""
Pod descriptors for CloudNativePG cluster instances.
"""

__version__ = "0.5.0"

from cnpg_pods.cluster import Cluster, load_cluster_manifest  # noqa: E402
from cnpg_pods.config import DEFAULT_SETTINGS, PodSettings, load_settings  # noqa: E402
from cnpg_pods.pods import (  # noqa: E402
    PodBuilder,
    PodRole,
    create_primary_pod,
    get_node_serial,
    instance_name,
    is_primary,
    join_replica_instance,
    pod_with_existing_storage,
)

__all__ = [
    "Cluster",
    "DEFAULT_SETTINGS",
    "PodBuilder",
    "PodRole",
    "PodSettings",
    "create_primary_pod",
    "get_node_serial",
    "instance_name",
    "is_primary",
    "join_replica_instance",
    "load_cluster_manifest",
    "load_settings",
    "pod_with_existing_storage",
]
