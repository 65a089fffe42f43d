"""
Tests for the default Postgres objects
"""

# First Party
import aconfig

# Local
from cloudres.managed_object import (
    Credentials,
    NetworkEndpoint,
    PodController,
    StorageClaim,
)
from cloudres.providers.openshift.defaults import (
    DEPLOYMENT_LABEL,
    PostgresDefaults,
    build_default_postgres_containers,
    build_default_postgres_deployment,
    build_default_postgres_pvc,
    build_default_postgres_secret,
    build_default_postgres_service,
    env_var_from_secret,
    env_var_from_value,
)
from cloudres.test_helpers.helpers import library_config
from cloudres.utils import b64_secret_decode

DEFAULTS = PostgresDefaults()


def test_from_config():
    """Make sure the defaults come from the library config"""
    assert PostgresDefaults.from_config() == DEFAULTS


def test_from_config_override():
    """Make sure configured values are used"""
    pg_config = aconfig.Config(
        {
            "port": "6543",
            "user": "admin",
            "password": "s3cret",
            "credentials_secret_name": "creds",
            "data_claim_name": "data",
            "storage_size": "5Gi",
            "image": "postgres:13",
            "data_mount_path": "/data",
        },
        override_env_vars=False,
    )
    with library_config(postgres=pg_config):
        defaults = PostgresDefaults.from_config()
    assert defaults.port == 6543
    assert defaults.user == "admin"
    assert defaults.credentials_secret_name == "creds"
    assert defaults.image == "postgres:13"


def test_pvc():
    """Make sure the claim has the shared name and requested size"""
    pvc = build_default_postgres_pvc("db1", "ns1", DEFAULTS)
    assert isinstance(pvc, StorageClaim)
    assert pvc.identity == ("PersistentVolumeClaim", "ns1", "postgresql-data")
    assert pvc.get_mutable() == {
        "accessModes": ["ReadWriteOnce"],
        "resources": {"requests": {"storage": "1Gi"}},
    }


def test_secret():
    """Make sure the credentials hold the encoded default user and password"""
    secret = build_default_postgres_secret("db1", "ns1", DEFAULTS)
    assert isinstance(secret, Credentials)
    assert secret.identity == ("Secret", "ns1", "postgres-credentials")
    assert secret.secret_type == "Opaque"
    data = secret.get_mutable()
    assert b64_secret_decode(data["user"]) == b"user"
    assert b64_secret_decode(data["password"]) == b"password"


def test_deployment():
    """Make sure the deployment runs one database pod using the claim"""
    deployment = build_default_postgres_deployment("db1", "ns1", DEFAULTS)
    assert isinstance(deployment, PodController)
    assert deployment.identity == ("Deployment", "ns1", "db1")
    spec = deployment.get_mutable()
    assert spec["replicas"] == 1
    assert spec["strategy"] == {"type": "Recreate"}
    assert spec["selector"] == {"matchLabels": {DEPLOYMENT_LABEL: "db1"}}
    assert spec["template"]["metadata"]["labels"] == {DEPLOYMENT_LABEL: "db1"}
    volumes = spec["template"]["spec"]["volumes"]
    assert volumes == [
        {
            "name": "postgresql-data",
            "persistentVolumeClaim": {"claimName": "postgresql-data"},
        }
    ]


def test_deployment_labels_not_shared():
    """Make sure the selector and template labels are separate dicts"""
    spec = build_default_postgres_deployment("db1", "ns1", DEFAULTS).get_mutable()
    spec["selector"]["matchLabels"]["extra"] = "x"
    assert "extra" not in spec["template"]["metadata"]["labels"]


def test_containers():
    """Make sure the database container is wired to the secret and claim"""
    (container,) = build_default_postgres_containers("db1", DEFAULTS)
    assert container["name"] == "db1"
    assert container["image"] == DEFAULTS.image
    assert container["ports"] == [{"containerPort": 5432, "protocol": "TCP"}]
    assert container["env"] == [
        env_var_from_secret("POSTGRESQL_USER", "postgres-credentials", "user"),
        env_var_from_secret("POSTGRESQL_PASSWORD", "postgres-credentials", "password"),
        env_var_from_value("POSTGRESQL_DATABASE", "db1"),
    ]
    assert container["volumeMounts"] == [
        {"name": "postgresql-data", "mountPath": "/var/lib/pgsql/data"}
    ]
    assert container["livenessProbe"]["tcpSocket"] == {"port": 5432}
    assert "psql" in container["readinessProbe"]["exec"]["command"][-1]


def test_service():
    """Make sure the service selects the workload pods on the database port"""
    service = build_default_postgres_service("db1", "ns1", DEFAULTS)
    assert isinstance(service, NetworkEndpoint)
    assert service.identity == ("Service", "ns1", "db1")
    assert service.get_mutable() == {
        "ports": [
            {"name": "postgresql", "protocol": "TCP", "port": 5432, "targetPort": 5432}
        ],
        "selector": {DEPLOYMENT_LABEL: "db1"},
    }


def test_env_vars():
    assert env_var_from_value("A", "b") == {"name": "A", "value": "b"}
    assert env_var_from_secret("A", "creds", "key") == {
        "name": "A",
        "valueFrom": {"secretKeyRef": {"name": "creds", "key": "key"}},
    }
