"""
The PostgreSQL container shared by every instance Pod.
"""

import logging
from typing import List, Optional

from kubernetes.client import (
    V1Container,
    V1EnvVar,
    V1EnvVarSource,
    V1ExecAction,
    V1HTTPGetAction,
    V1Lifecycle,
    V1LifecycleHandler,
    V1Probe,
    V1ResourceRequirements,
    V1SecretKeySelector,
    V1VolumeMount,
)

from cnpg_pods.cluster import BackupConfiguration, Cluster, SecretKeySelector
from cnpg_pods.config import DEFAULT_SETTINGS, PodSettings

logger = logging.getLogger(__name__)


# ============================================================================
# Object Storage Credentials
# ============================================================================

def _secret_key_env_var(name: str, selector: SecretKeySelector) -> V1EnvVar:
    return V1EnvVar(
        name=name,
        value_from=V1EnvVarSource(
            secret_key_ref=V1SecretKeySelector(name=selector.name, key=selector.key)
        ),
    )


def create_access_key_id_env_var(backup: Optional[BackupConfiguration]) -> V1EnvVar:
    """
    Create the AWS_ACCESS_KEY_ID environment variable.

    The variable is always declared. Without a backup configuration it
    carries an empty literal value; otherwise it references the Secret key
    named in the backup credentials.
    """
    if backup is None:
        return V1EnvVar(name="AWS_ACCESS_KEY_ID", value="")

    return _secret_key_env_var(
        "AWS_ACCESS_KEY_ID", backup.s3_credentials.access_key_id_reference
    )


def create_secret_access_key_env_var(backup: Optional[BackupConfiguration]) -> V1EnvVar:
    """Create the AWS_SECRET_ACCESS_KEY environment variable, like the access key ID."""
    if backup is None:
        return V1EnvVar(name="AWS_SECRET_ACCESS_KEY", value="")

    return _secret_key_env_var(
        "AWS_SECRET_ACCESS_KEY", backup.s3_credentials.secret_access_key_reference
    )


# ============================================================================
# PostgreSQL Container
# ============================================================================

def create_instance_env(
    cluster: Cluster,
    pod_name: str,
    settings: PodSettings = DEFAULT_SETTINGS,
) -> List[V1EnvVar]:
    """Environment shared by the instance manager commands."""
    return [
        V1EnvVar(name="PGDATA", value=settings.pgdata_path),
        V1EnvVar(name="POD_NAME", value=pod_name),
        V1EnvVar(name="NAMESPACE", value=cluster.namespace),
        V1EnvVar(name="CLUSTER_NAME", value=cluster.name),
    ]


def create_probe(path: str, settings: PodSettings, initial_delay_seconds: Optional[int] = None) -> V1Probe:
    return V1Probe(
        initial_delay_seconds=initial_delay_seconds,
        timeout_seconds=settings.probe_timeout_seconds,
        http_get=V1HTTPGetAction(path=path, port=settings.status_port),
    )


def create_pre_stop_lifecycle(cluster: Cluster) -> V1Lifecycle:
    """
    Stop PostgreSQL in smart mode before the container is killed.

    Smart shutdown waits for client sessions to end, for at most the
    cluster's maximum stop delay.
    """
    return V1Lifecycle(
        pre_stop=V1LifecycleHandler(
            _exec=V1ExecAction(
                command=[
                    "pg_ctl",
                    "stop",
                    "-m",
                    "smart",
                    "-t",
                    str(cluster.get_max_stop_delay()),
                ]
            )
        )
    )


def create_postgres_container(
    cluster: Cluster,
    pod_name: str,
    settings: PodSettings = DEFAULT_SETTINGS,
) -> V1Container:
    """
    Create the long-running PostgreSQL container of an instance.

    The container runs the instance manager staged in the controller volume
    by the bootstrap-controller init container. Only the liveness probe is
    delayed by the maximum start delay, so a slow crash recovery does not
    get the container restarted; readiness is reported as soon as the
    instance manager answers.

    Args:
        cluster: The cluster the instance belongs to
        pod_name: Name of the Pod, i.e. the instance name
        settings: Names, paths and ports to use

    Returns:
        The container descriptor
    """
    env = create_instance_env(cluster, pod_name, settings)
    env.append(create_access_key_id_env_var(cluster.spec.backup))
    env.append(create_secret_access_key_env_var(cluster.spec.backup))

    resources = cluster.spec.resources

    return V1Container(
        name=settings.postgres_container_name,
        image=cluster.get_image_name(settings.postgres_image),
        env=env,
        volume_mounts=[
            V1VolumeMount(
                name=settings.data_volume_name,
                mount_path=settings.data_mount_path,
            ),
            V1VolumeMount(
                name=settings.controller_volume_name,
                mount_path=settings.controller_mount_path,
            ),
        ],
        readiness_probe=create_probe(settings.readiness_probe_path, settings),
        # A startup probe would let us drop the initial delay here
        liveness_probe=create_probe(
            settings.liveness_probe_path,
            settings,
            initial_delay_seconds=cluster.get_max_start_delay(),
        ),
        lifecycle=create_pre_stop_lifecycle(cluster),
        command=[
            settings.instance_manager_path,
            "instance",
            "run",
            "-app-db-name", cluster.spec.application_configuration.database,
        ],
        resources=V1ResourceRequirements(
            limits=resources.limits,
            requests=resources.requests,
        ),
    )


def create_postgres_containers(
    cluster: Cluster,
    pod_name: str,
    settings: PodSettings = DEFAULT_SETTINGS,
) -> List[V1Container]:
    """Containers of an instance Pod: PostgreSQL only."""
    logger.debug(f"Building postgres container for {pod_name}")
    return [create_postgres_container(cluster, pod_name, settings)]
