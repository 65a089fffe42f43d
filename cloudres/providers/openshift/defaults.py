"""
Default object definitions for a Postgres workload running in the cluster. These
are used for every kind whose strategy has no override.
"""

# Standard
from dataclasses import dataclass
from typing import List, Optional

# Local
from ... import config
from ...managed_object import Credentials, NetworkEndpoint, PodController, StorageClaim
from ...utils import b64_secret

# Label used to select the pods of a workload
DEPLOYMENT_LABEL = "deployment"

# Readiness check run inside the database container
READINESS_COMMAND = [
    "/bin/sh",
    "-i",
    "-c",
    "psql -h 127.0.0.1 -U $POSTGRESQL_USER -q -d $POSTGRESQL_DATABASE -c 'SELECT 1'",
]

# Keys of the credentials secret
USER_KEY = "user"
PASSWORD_KEY = "password"


@dataclass(frozen=True)
class PostgresDefaults:
    """Immutable values that parameterize the default objects"""

    port: int = 5432
    user: str = "user"
    password: str = "password"
    credentials_secret_name: str = "postgres-credentials"
    data_claim_name: str = "postgresql-data"
    storage_size: str = "1Gi"
    image: str = "registry.redhat.io/rhscl/postgresql-96-rhel7"
    data_mount_path: str = "/var/lib/pgsql/data"

    @classmethod
    def from_config(cls) -> "PostgresDefaults":
        """Build the defaults from the postgres section of the library config"""
        pg_config = config.postgres
        return cls(
            port=int(pg_config.port),
            user=str(pg_config.user),
            password=str(pg_config.password),
            credentials_secret_name=pg_config.credentials_secret_name,
            data_claim_name=pg_config.data_claim_name,
            storage_size=str(pg_config.storage_size),
            image=pg_config.image,
            data_mount_path=pg_config.data_mount_path,
        )


## Objects #####################################################################


def build_default_postgres_pvc(
    name: str, namespace: str, defaults: PostgresDefaults
) -> StorageClaim:
    """The claim for the database files. It has a fixed name, so it is shared
    by the workloads of a namespace.
    """
    # pylint: disable=unused-argument
    return StorageClaim(
        {
            "metadata": {"name": defaults.data_claim_name, "namespace": namespace},
            "spec": {
                "accessModes": ["ReadWriteOnce"],
                "resources": {"requests": {"storage": defaults.storage_size}},
            },
        }
    )


def build_default_postgres_secret(
    name: str, namespace: str, defaults: PostgresDefaults
) -> Credentials:
    """The shared credentials secret with the default user and password"""
    # pylint: disable=unused-argument
    return Credentials(
        {
            "metadata": {
                "name": defaults.credentials_secret_name,
                "namespace": namespace,
            },
            "type": "Opaque",
            "data": {
                USER_KEY: b64_secret(defaults.user),
                PASSWORD_KEY: b64_secret(defaults.password),
            },
        }
    )


def build_default_postgres_deployment(
    name: str, namespace: str, defaults: PostgresDefaults
) -> PodController:
    """A single replica of the database. Recreate is used since two pods can't
    share the ReadWriteOnce claim.
    """
    labels = {DEPLOYMENT_LABEL: name}
    return PodController(
        {
            "metadata": {"name": name, "namespace": namespace},
            "spec": {
                "strategy": {"type": "Recreate"},
                "replicas": 1,
                "selector": {"matchLabels": dict(labels)},
                "template": {
                    "metadata": {"labels": dict(labels)},
                    "spec": {
                        "volumes": [
                            {
                                "name": defaults.data_claim_name,
                                "persistentVolumeClaim": {
                                    "claimName": defaults.data_claim_name
                                },
                            }
                        ],
                        "containers": build_default_postgres_containers(
                            name, defaults
                        ),
                    },
                },
            },
        }
    )


def build_default_postgres_service(
    name: str, namespace: str, defaults: PostgresDefaults
) -> NetworkEndpoint:
    return NetworkEndpoint(
        {
            "metadata": {"name": name, "namespace": namespace},
            "spec": {
                "ports": [
                    {
                        "name": "postgresql",
                        "protocol": "TCP",
                        "port": defaults.port,
                        "targetPort": defaults.port,
                    }
                ],
                "selector": {DEPLOYMENT_LABEL: name},
            },
        }
    )


## Containers ##################################################################


def build_default_postgres_containers(
    name: str, defaults: PostgresDefaults
) -> List[dict]:
    return [
        {
            "name": name,
            "image": defaults.image,
            "ports": [{"containerPort": defaults.port, "protocol": "TCP"}],
            "env": [
                env_var_from_secret(
                    "POSTGRESQL_USER", defaults.credentials_secret_name, USER_KEY
                ),
                env_var_from_secret(
                    "POSTGRESQL_PASSWORD",
                    defaults.credentials_secret_name,
                    PASSWORD_KEY,
                ),
                env_var_from_value("POSTGRESQL_DATABASE", name),
            ],
            "volumeMounts": [
                {
                    "name": defaults.data_claim_name,
                    "mountPath": defaults.data_mount_path,
                }
            ],
            "livenessProbe": {
                "tcpSocket": {"port": defaults.port},
                "initialDelaySeconds": 30,
                "periodSeconds": 10,
            },
            "readinessProbe": {
                "exec": {"command": list(READINESS_COMMAND)},
                "initialDelaySeconds": 10,
                "periodSeconds": 30,
                "timeoutSeconds": 5,
            },
            "imagePullPolicy": "IfNotPresent",
        }
    ]


def env_var_from_value(name: str, value: Optional[str]) -> dict:
    """Environment variable with a literal value"""
    return {"name": name, "value": value}


def env_var_from_secret(name: str, secret_name: str, secret_key: str) -> dict:
    """Environment variable read from a key of a secret"""
    return {
        "name": name,
        "valueFrom": {"secretKeyRef": {"name": secret_name, "key": secret_key}},
    }
