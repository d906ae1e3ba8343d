"""
Placement, identity and image pull settings of instance Pods.
"""

from typing import List, Optional

from kubernetes.client import (
    V1Affinity,
    V1LabelSelector,
    V1LabelSelectorRequirement,
    V1LocalObjectReference,
    V1PodAffinityTerm,
    V1PodAntiAffinity,
    V1PodSecurityContext,
    V1WeightedPodAffinityTerm,
)

from cnpg_pods.cluster import AffinityConfiguration, Cluster
from cnpg_pods.config import DEFAULT_SETTINGS, PodSettings


def create_affinity_section(
    cluster_name: str,
    config: AffinityConfiguration,
    settings: PodSettings = DEFAULT_SETTINGS,
) -> Optional[V1Affinity]:
    """
    Create the affinity section keeping instances of a cluster apart.

    Returns None unless pod anti-affinity is enabled. The rule is only
    preferred, never required: with fewer topology domains than instances
    the extra Pods still get scheduled.

    Args:
        cluster_name: Value of the cluster label to match
        config: Affinity configuration of the cluster
        settings: Label name, default topology key and weight

    Returns:
        The affinity section, or None
    """
    if not config.enable_pod_anti_affinity:
        return None

    topology_key = config.topology_key or settings.default_topology_key

    return V1Affinity(
        pod_anti_affinity=V1PodAntiAffinity(
            preferred_during_scheduling_ignored_during_execution=[
                V1WeightedPodAffinityTerm(
                    weight=settings.anti_affinity_weight,
                    pod_affinity_term=V1PodAffinityTerm(
                        label_selector=V1LabelSelector(
                            match_expressions=[
                                V1LabelSelectorRequirement(
                                    key=settings.cluster_label_name,
                                    operator="In",
                                    values=[cluster_name],
                                ),
                            ],
                        ),
                        topology_key=topology_key,
                    ),
                ),
            ],
        ),
    )


def create_postgres_security_context(
    postgres_user: int = DEFAULT_SETTINGS.postgres_user,
    postgres_group: int = DEFAULT_SETTINGS.postgres_group,
) -> V1PodSecurityContext:
    """Run every container as the postgres user of the image (uid/gid 26)."""
    return V1PodSecurityContext(
        run_as_user=postgres_user,
        run_as_group=postgres_group,
        fs_group=postgres_group,
    )


def create_image_pull_secrets(cluster: Cluster) -> List[V1LocalObjectReference]:
    """Pull secrets of the Pod: empty, or the one configured in the cluster."""
    secret_name = cluster.get_image_pull_secret()
    if not secret_name:
        return []

    return [V1LocalObjectReference(name=secret_name)]
