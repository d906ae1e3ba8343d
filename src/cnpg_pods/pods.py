"""
Pod descriptors for the instances of a PostgreSQL cluster.

An instance is identified by the cluster name and a node serial assigned by
the controller. Depending on its lifecycle role, the Pod created for it:

- primary: bootstraps a new PGDATA, creating the application database and
  owner, then runs PostgreSQL as the primary
- replica: clones PGDATA from the current primary through the read-write
  service, then runs PostgreSQL as a standby
- existing-storage: restarts an instance on a PGDATA that already exists

Every Pod shares the same PostgreSQL container, volumes, affinity, security
context and service account; only the init containers and the role label
differ. Building a Pod is a pure function of (cluster, serial) and never
contacts the Kubernetes API.
"""

import logging
from enum import Enum
from typing import List, Optional

from kubernetes.client import V1Container, V1EnvVar, V1ObjectMeta, V1Pod, V1PodSpec

from cnpg_pods.cluster import Cluster
from cnpg_pods.config import DEFAULT_SETTINGS, PodSettings
from cnpg_pods.containers import create_instance_env, create_postgres_containers
from cnpg_pods.scheduling import (
    create_affinity_section,
    create_image_pull_secrets,
    create_postgres_security_context,
)
from cnpg_pods.volumes import (
    create_bootstrap_volume_mounts,
    create_controller_volume_mount,
    create_postgres_volumes,
)

logger = logging.getLogger(__name__)


class PodRole(str, Enum):
    PRIMARY = "primary"
    REPLICA = "replica"
    EXISTING_STORAGE = "existing-storage"


def instance_name(cluster: Cluster, node_serial: int) -> str:
    """Name of the instance with the given serial, e.g. ``pg1-3``."""
    return f"{cluster.name}-{node_serial}"


def get_node_serial(pod: V1Pod, settings: PodSettings = DEFAULT_SETTINGS) -> Optional[int]:
    """
    Read the node serial back from a Pod's annotations.

    Returns None when the annotation is missing or not a number.
    """
    annotations = (pod.metadata.annotations if pod.metadata else None) or {}
    value = annotations.get(settings.serial_annotation_name)
    if value is None:
        return None

    try:
        return int(value)
    except ValueError:
        logger.warning(f"Pod has a non-numeric node serial annotation: {value!r}")
        return None


def is_primary(pod: V1Pod, settings: PodSettings = DEFAULT_SETTINGS) -> bool:
    labels = (pod.metadata.labels if pod.metadata else None) or {}
    return labels.get(settings.role_label_name) == settings.role_label_primary


class PodBuilder:
    """
    Build instance Pods for one set of settings.

    Args:
        settings: Names, paths, ports and images used in the generated Pods
    """

    def __init__(self, settings: PodSettings = DEFAULT_SETTINGS):
        self.settings = settings

    # ------------------------------------------------------------------------
    # Init containers
    # ------------------------------------------------------------------------

    def _bootstrap_controller_container(self) -> V1Container:
        """Copy the instance manager into the controller volume."""
        s = self.settings
        return V1Container(
            name=s.bootstrap_controller_container_name,
            image=s.operator_image,
            command=[
                s.operator_manager_path,
                "bootstrap",
                s.instance_manager_path,
            ],
            volume_mounts=[create_controller_volume_mount(s)],
        )

    def _bootstrap_instance_container(self, cluster: Cluster, pod_name: str) -> V1Container:
        s = self.settings
        app = cluster.spec.application_configuration
        return V1Container(
            name=s.bootstrap_instance_container_name,
            image=cluster.get_image_name(s.postgres_image),
            env=[
                V1EnvVar(name="PGDATA", value=s.pgdata_path),
                V1EnvVar(name="POD_NAME", value=pod_name),
                V1EnvVar(name="CLUSTER_NAME", value=cluster.name),
                V1EnvVar(name="NAMESPACE", value=cluster.namespace),
            ],
            command=[
                s.instance_manager_path,
                "instance",
                "init",
                "-pw-file", s.superuser_password_file,
                "-app-db-name", app.database,
                "-app-user", app.owner,
                "-app-pw-file", s.app_password_file,
                "-hba-rules-file", s.hba_rules_file,
                "-postgresql-config-file", s.postgresql_config_file,
                "-parent-node", cluster.get_service_read_write_name(),
            ],
            volume_mounts=create_bootstrap_volume_mounts(s),
        )

    def _bootstrap_replica_container(self, cluster: Cluster, pod_name: str) -> V1Container:
        s = self.settings
        return V1Container(
            name=s.bootstrap_replica_container_name,
            image=cluster.get_image_name(s.postgres_image),
            # PGDATA and POD_NAME only
            env=create_instance_env(cluster, pod_name, s)[:2],
            command=[
                s.instance_manager_path,
                "instance",
                "join",
                "-parent-node", cluster.get_service_read_write_name(),
            ],
            volume_mounts=create_bootstrap_volume_mounts(s),
        )

    # ------------------------------------------------------------------------
    # Pods
    # ------------------------------------------------------------------------

    def _build_pod(
        self,
        cluster: Cluster,
        node_serial: int,
        init_containers: List[V1Container],
        primary: bool,
    ) -> V1Pod:
        s = self.settings
        pod_name = instance_name(cluster, node_serial)

        labels = {s.cluster_label_name: cluster.name}
        if primary:
            labels[s.role_label_name] = s.role_label_primary

        return V1Pod(
            api_version="v1",
            kind="Pod",
            metadata=V1ObjectMeta(
                name=pod_name,
                namespace=cluster.namespace,
                labels=labels,
                annotations={s.serial_annotation_name: str(node_serial)},
            ),
            spec=V1PodSpec(
                hostname=pod_name,
                subdomain=cluster.get_service_any_name(),
                init_containers=init_containers,
                containers=create_postgres_containers(cluster, pod_name, s),
                image_pull_secrets=create_image_pull_secrets(cluster),
                volumes=create_postgres_volumes(cluster, pod_name, s),
                affinity=create_affinity_section(cluster.name, cluster.spec.affinity, s),
                security_context=create_postgres_security_context(
                    s.postgres_user, s.postgres_group
                ),
                service_account_name=cluster.name,
            ),
        )

    def create_primary_pod(self, cluster: Cluster, node_serial: int) -> V1Pod:
        """Create the Pod bootstrapping a new primary instance."""
        pod_name = instance_name(cluster, node_serial)
        logger.debug(f"Building primary pod {cluster.namespace}/{pod_name}")
        return self._build_pod(
            cluster,
            node_serial,
            [
                self._bootstrap_controller_container(),
                self._bootstrap_instance_container(cluster, pod_name),
            ],
            primary=True,
        )

    def join_replica_instance(self, cluster: Cluster, node_serial: int) -> V1Pod:
        """Create the Pod of a replica cloning its data from the primary."""
        pod_name = instance_name(cluster, node_serial)
        logger.debug(f"Building replica pod {cluster.namespace}/{pod_name}")
        return self._build_pod(
            cluster,
            node_serial,
            [
                self._bootstrap_controller_container(),
                self._bootstrap_replica_container(cluster, pod_name),
            ],
            primary=False,
        )

    def pod_with_existing_storage(self, cluster: Cluster, node_serial: int) -> V1Pod:
        """Create a primary Pod restarting on an already initialized PGDATA."""
        pod_name = instance_name(cluster, node_serial)
        logger.debug(f"Building pod {cluster.namespace}/{pod_name} on existing storage")
        return self._build_pod(
            cluster,
            node_serial,
            [self._bootstrap_controller_container()],
            primary=True,
        )

    def build(self, cluster: Cluster, node_serial: int, role: PodRole) -> V1Pod:
        """Create the Pod for the given role."""
        role = PodRole(role)
        if role == PodRole.PRIMARY:
            return self.create_primary_pod(cluster, node_serial)
        if role == PodRole.REPLICA:
            return self.join_replica_instance(cluster, node_serial)
        return self.pod_with_existing_storage(cluster, node_serial)


_default_builder = PodBuilder()


def create_primary_pod(cluster: Cluster, node_serial: int) -> V1Pod:
    """Create a new primary instance Pod with the default settings."""
    return _default_builder.create_primary_pod(cluster, node_serial)


def join_replica_instance(cluster: Cluster, node_serial: int) -> V1Pod:
    """Create a replica instance Pod with the default settings."""
    return _default_builder.join_replica_instance(cluster, node_serial)


def pod_with_existing_storage(cluster: Cluster, node_serial: int) -> V1Pod:
    """Create a primary Pod on existing storage with the default settings."""
    return _default_builder.pod_with_existing_storage(cluster, node_serial)
