import os

import pytest

from cnpg_pods.cluster import Cluster, load_cluster_manifest

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def read_fixture(name):
    with open(os.path.join(FIXTURES_DIR, name)) as f:
        return f.read()


def make_cluster(name="pg1", namespace="db", **spec):
    return Cluster.from_manifest({
        "metadata": {"name": name, "namespace": namespace},
        "spec": spec,
    })


@pytest.fixture
def cluster_manifest():
    return read_fixture("cluster.yaml")


@pytest.fixture
def full_cluster(cluster_manifest):
    """Cluster using every optional section: backup, storage, affinity, pull secret."""
    return load_cluster_manifest(cluster_manifest)


@pytest.fixture
def minimal_cluster():
    """Cluster with nothing but a name: ephemeral storage, no backup, no affinity."""
    return make_cluster()


@pytest.fixture
def example_cluster():
    """pg1 in db with persistent storage, no backup, anti-affinity without a topology key."""
    return make_cluster(
        storage={"size": "1Gi"},
        affinity={"enablePodAntiAffinity": True, "topologyKey": ""},
    )
