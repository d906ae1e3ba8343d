"""
Volumes mounted by instance Pods.
"""

from typing import List

from kubernetes.client import (
    V1ConfigMapVolumeSource,
    V1EmptyDirVolumeSource,
    V1PersistentVolumeClaimVolumeSource,
    V1SecretVolumeSource,
    V1Volume,
    V1VolumeMount,
)

from cnpg_pods.cluster import Cluster
from cnpg_pods.config import DEFAULT_SETTINGS, PodSettings


def create_data_volume(cluster: Cluster, pod_name: str, settings: PodSettings = DEFAULT_SETTINGS) -> V1Volume:
    """
    Create the PGDATA volume.

    With persistent storage the volume is the claim named after the
    instance; otherwise it is an empty directory living as long as the Pod.
    """
    if cluster.is_using_persistent_storage():
        return V1Volume(
            name=settings.data_volume_name,
            persistent_volume_claim=V1PersistentVolumeClaimVolumeSource(
                claim_name=pod_name,
            ),
        )

    return V1Volume(
        name=settings.data_volume_name,
        empty_dir=V1EmptyDirVolumeSource(),
    )


def create_postgres_volumes(
    cluster: Cluster,
    pod_name: str,
    settings: PodSettings = DEFAULT_SETTINGS,
) -> List[V1Volume]:
    """
    Create the five volumes of an instance Pod.

    Order is fixed: data, config, superuser secret, application secret and
    the controller scratch volume where the instance manager is staged.
    """
    return [
        create_data_volume(cluster, pod_name, settings),
        V1Volume(
            name=settings.config_volume_name,
            config_map=V1ConfigMapVolumeSource(name=cluster.name),
        ),
        V1Volume(
            name=settings.superuser_secret_volume_name,
            secret=V1SecretVolumeSource(
                secret_name=cluster.get_superuser_secret_name(),
            ),
        ),
        V1Volume(
            name=settings.app_secret_volume_name,
            secret=V1SecretVolumeSource(
                secret_name=cluster.get_application_secret_name(),
            ),
        ),
        V1Volume(
            name=settings.controller_volume_name,
            empty_dir=V1EmptyDirVolumeSource(),
        ),
    ]


def create_controller_volume_mount(settings: PodSettings = DEFAULT_SETTINGS) -> V1VolumeMount:
    return V1VolumeMount(
        name=settings.controller_volume_name,
        mount_path=settings.controller_mount_path,
    )


def create_bootstrap_volume_mounts(settings: PodSettings = DEFAULT_SETTINGS) -> List[V1VolumeMount]:
    """Mounts for init containers that prepare PGDATA: every volume of the Pod."""
    return [
        V1VolumeMount(name=settings.data_volume_name, mount_path=settings.data_mount_path),
        V1VolumeMount(name=settings.config_volume_name, mount_path=settings.config_mount_path),
        V1VolumeMount(
            name=settings.superuser_secret_volume_name,
            mount_path=settings.superuser_secret_mount_path,
        ),
        V1VolumeMount(
            name=settings.app_secret_volume_name,
            mount_path=settings.app_secret_mount_path,
        ),
        create_controller_volume_mount(settings),
    ]
