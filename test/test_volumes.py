from cnpg_pods.volumes import (
    create_bootstrap_volume_mounts,
    create_data_volume,
    create_postgres_volumes,
)
from conftest import make_cluster


def test_volume_sources(full_cluster):
    pgdata, config, superuser, app, controller = create_postgres_volumes(full_cluster, "pg1-2")

    assert pgdata.persistent_volume_claim.claim_name == "pg1-2"
    assert config.config_map.name == "pg1"
    assert superuser.secret.secret_name == "pg1-superuser"
    assert app.secret.secret_name == "pg1-app"
    assert controller.empty_dir is not None


def test_each_volume_has_one_source(minimal_cluster):
    sources = ["persistent_volume_claim", "empty_dir", "config_map", "secret"]
    for volume in create_postgres_volumes(minimal_cluster, "pg1-1"):
        assert sum(getattr(volume, s) is not None for s in sources) == 1


def test_data_volume_ephemeral_without_storage():
    volume = create_data_volume(make_cluster(), "pg1-1")
    assert volume.name == "pgdata"
    assert volume.empty_dir is not None
    assert volume.persistent_volume_claim is None


def test_secret_volumes_follow_custom_names():
    cluster = make_cluster(
        superuserSecret="root-pw",
        applicationConfiguration={"secret": "app-pw"},
    )
    volumes = {v.name: v for v in create_postgres_volumes(cluster, "pg1-1")}

    assert volumes["superuser-secret"].secret.secret_name == "root-pw"
    assert volumes["app-secret"].secret.secret_name == "app-pw"


def test_bootstrap_mounts_cover_every_volume(minimal_cluster):
    volume_names = [v.name for v in create_postgres_volumes(minimal_cluster, "pg1-1")]
    assert [m.name for m in create_bootstrap_volume_mounts()] == volume_names
