import pytest
from kubernetes.client import V1ObjectMeta, V1Pod

from cnpg_pods.config import PodSettings
from cnpg_pods.pods import (
    PodBuilder,
    PodRole,
    create_primary_pod,
    get_node_serial,
    instance_name,
    is_primary,
    join_replica_instance,
    pod_with_existing_storage,
)
from conftest import make_cluster

ALL_ROLES = [create_primary_pod, join_replica_instance, pod_with_existing_storage]

# ----------------------------
# Example scenario
# ----------------------------

def test_primary_pod_example(example_cluster):
    pod = create_primary_pod(example_cluster, 3)

    assert pod.metadata.name == "pg1-3"
    assert pod.metadata.namespace == "db"
    assert pod.metadata.labels == {"postgresql": "pg1", "role": "primary"}
    assert pod.metadata.annotations == {"k8s.2ndq.io/nodeSerial": "3"}

    data = pod.spec.volumes[0]
    assert data.name == "pgdata"
    assert data.persistent_volume_claim.claim_name == "pg1-3"

    env = {e.name: e for e in pod.spec.containers[0].env}
    assert env["AWS_ACCESS_KEY_ID"].value == ""
    assert env["AWS_SECRET_ACCESS_KEY"].value == ""

    terms = pod.spec.affinity.pod_anti_affinity.preferred_during_scheduling_ignored_during_execution
    assert len(terms) == 1
    assert terms[0].weight == 100
    assert terms[0].pod_affinity_term.topology_key == "kubernetes.io/hostname"
    expression = terms[0].pod_affinity_term.label_selector.match_expressions[0]
    assert (expression.key, expression.operator, expression.values) == ("postgresql", "In", ["pg1"])


# ----------------------------
# Identity
# ----------------------------

@pytest.mark.parametrize("build", ALL_ROLES)
def test_pod_identity(build, full_cluster):
    pod = build(full_cluster, 7)

    assert pod.api_version == "v1"
    assert pod.kind == "Pod"
    assert pod.metadata.name == "pg1-7"
    assert pod.metadata.annotations["k8s.2ndq.io/nodeSerial"] == "7"
    assert pod.metadata.labels["postgresql"] == "pg1"
    assert pod.spec.hostname == "pg1-7"
    assert pod.spec.subdomain == "pg1-any"
    assert pod.spec.service_account_name == "pg1"


@pytest.mark.parametrize("build", ALL_ROLES)
def test_pod_is_deterministic(build, full_cluster):
    assert build(full_cluster, 2) == build(full_cluster, 2)
    assert build(full_cluster, 2) != build(full_cluster, 3)


def test_serial_zero(minimal_cluster):
    pod = create_primary_pod(minimal_cluster, 0)
    assert pod.metadata.name == "pg1-0"
    assert pod.metadata.annotations["k8s.2ndq.io/nodeSerial"] == "0"


def test_instance_name(minimal_cluster):
    assert instance_name(minimal_cluster, 12) == "pg1-12"


def test_role_labels(full_cluster):
    assert create_primary_pod(full_cluster, 1).metadata.labels["role"] == "primary"
    assert pod_with_existing_storage(full_cluster, 1).metadata.labels["role"] == "primary"
    assert "role" not in join_replica_instance(full_cluster, 2).metadata.labels


# ----------------------------
# Init containers
# ----------------------------

def _init_names(pod):
    return [c.name for c in pod.spec.init_containers]


def test_init_container_sequences(full_cluster):
    assert _init_names(create_primary_pod(full_cluster, 1)) == [
        "bootstrap-controller", "bootstrap-instance",
    ]
    assert _init_names(join_replica_instance(full_cluster, 2)) == [
        "bootstrap-controller", "bootstrap-replica",
    ]
    assert _init_names(pod_with_existing_storage(full_cluster, 1)) == ["bootstrap-controller"]


@pytest.mark.parametrize("build", ALL_ROLES)
def test_bootstrap_controller_stages_manager(build, full_cluster):
    controller = build(full_cluster, 1).spec.init_containers[0]

    assert controller.image.startswith("quay.io/enterprisedb/cloud-native-postgresql:")
    assert controller.command == ["/manager", "bootstrap", "/controller/manager"]
    assert [(m.name, m.mount_path) for m in controller.volume_mounts] == [
        ("controller", "/controller"),
    ]


def test_bootstrap_instance_command(full_cluster):
    init = create_primary_pod(full_cluster, 1).spec.init_containers[1]

    assert init.image == "quay.io/enterprisedb/postgresql:12.3"
    assert init.command == [
        "/controller/manager", "instance", "init",
        "-pw-file", "/etc/superuser-secret/password",
        "-app-db-name", "inventory",
        "-app-user", "inventory_owner",
        "-app-pw-file", "/etc/app-secret/password",
        "-hba-rules-file", "/etc/configuration/postgresHBA",
        "-postgresql-config-file", "/etc/configuration/postgresConfiguration",
        "-parent-node", "pg1-rw",
    ]
    assert [(e.name, e.value) for e in init.env] == [
        ("PGDATA", "/var/lib/postgresql/data/pgdata"),
        ("POD_NAME", "pg1-1"),
        ("CLUSTER_NAME", "pg1"),
        ("NAMESPACE", "db"),
    ]
    assert [m.mount_path for m in init.volume_mounts] == [
        "/var/lib/postgresql/data",
        "/etc/configuration",
        "/etc/superuser-secret",
        "/etc/app-secret",
        "/controller",
    ]


def test_bootstrap_replica_command(full_cluster):
    init = join_replica_instance(full_cluster, 4).spec.init_containers[1]

    assert init.command == [
        "/controller/manager", "instance", "join", "-parent-node", "pg1-rw",
    ]
    assert [(e.name, e.value) for e in init.env] == [
        ("PGDATA", "/var/lib/postgresql/data/pgdata"),
        ("POD_NAME", "pg1-4"),
    ]
    assert len(init.volume_mounts) == 5


# ----------------------------
# Shared sections
# ----------------------------

@pytest.mark.parametrize("build", ALL_ROLES)
def test_five_volumes(build, minimal_cluster):
    volumes = build(minimal_cluster, 1).spec.volumes
    assert [v.name for v in volumes] == [
        "pgdata", "config", "superuser-secret", "app-secret", "controller",
    ]


@pytest.mark.parametrize("build", [create_primary_pod, join_replica_instance])
def test_data_volume_follows_storage_mode(build):
    persistent = build(make_cluster(storage={"size": "5Gi"}), 2).spec.volumes[0]
    assert persistent.persistent_volume_claim.claim_name == "pg1-2"
    assert persistent.empty_dir is None

    ephemeral = build(make_cluster(), 2).spec.volumes[0]
    assert ephemeral.persistent_volume_claim is None
    assert ephemeral.empty_dir is not None


def test_image_pull_secrets(full_cluster, minimal_cluster):
    assert [s.name for s in create_primary_pod(full_cluster, 1).spec.image_pull_secrets] == [
        "registry-credentials",
    ]
    assert join_replica_instance(minimal_cluster, 1).spec.image_pull_secrets == []


def test_no_affinity_by_default(minimal_cluster):
    for build in ALL_ROLES:
        assert build(minimal_cluster, 1).spec.affinity is None


@pytest.mark.parametrize("build", ALL_ROLES)
def test_security_context(build, minimal_cluster):
    context = build(minimal_cluster, 1).spec.security_context
    assert (context.run_as_user, context.run_as_group, context.fs_group) == (26, 26, 26)


@pytest.mark.parametrize("build", ALL_ROLES)
def test_single_postgres_container(build, full_cluster):
    containers = build(full_cluster, 1).spec.containers
    assert [c.name for c in containers] == ["postgres"]


# ----------------------------
# PodBuilder
# ----------------------------

def test_builder_dispatches_on_role(full_cluster):
    builder = PodBuilder()
    assert builder.build(full_cluster, 1, PodRole.PRIMARY) == create_primary_pod(full_cluster, 1)
    assert builder.build(full_cluster, 1, "replica") == join_replica_instance(full_cluster, 1)
    assert builder.build(full_cluster, 1, "existing-storage") == pod_with_existing_storage(full_cluster, 1)


def test_builder_rejects_unknown_role(full_cluster):
    with pytest.raises(ValueError):
        PodBuilder().build(full_cluster, 1, "witness")


def test_builder_uses_injected_settings(minimal_cluster):
    settings = PodSettings(
        operator_image="registry.local/operator:dev",
        postgres_image="registry.local/postgres:13",
        cluster_label_name="cnpg.io/cluster",
        serial_annotation_name="cnpg.io/nodeSerial",
        postgres_user=999,
        postgres_group=999,
    )
    pod = PodBuilder(settings).create_primary_pod(minimal_cluster, 5)

    assert pod.metadata.labels == {"cnpg.io/cluster": "pg1", "role": "primary"}
    assert pod.metadata.annotations == {"cnpg.io/nodeSerial": "5"}
    assert pod.spec.init_containers[0].image == "registry.local/operator:dev"
    assert pod.spec.init_containers[1].image == "registry.local/postgres:13"
    assert pod.spec.containers[0].image == "registry.local/postgres:13"
    assert pod.spec.security_context.run_as_user == 999


# ----------------------------
# Reading pods back
# ----------------------------

def test_get_node_serial(full_cluster):
    assert get_node_serial(join_replica_instance(full_cluster, 11)) == 11


def test_get_node_serial_missing_or_invalid():
    assert get_node_serial(V1Pod(metadata=V1ObjectMeta(name="x"))) is None
    assert get_node_serial(V1Pod()) is None
    pod = V1Pod(metadata=V1ObjectMeta(annotations={"k8s.2ndq.io/nodeSerial": "abc"}))
    assert get_node_serial(pod) is None


def test_is_primary(full_cluster):
    assert is_primary(create_primary_pod(full_cluster, 1))
    assert is_primary(pod_with_existing_storage(full_cluster, 1))
    assert not is_primary(join_replica_instance(full_cluster, 2))
    assert not is_primary(V1Pod())
