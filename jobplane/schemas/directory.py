"""Queue, cluster and flavour records served by the directory."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Queue:
    """Binding from submissions to a cluster and a namespace in it."""
    id: str
    name: str
    cluster_id: str
    namespace: str = "default"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Queue":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            cluster_id=data["cluster_id"],
            namespace=data.get("namespace", "default"),
        )


@dataclass(frozen=True)
class Cluster:
    """
    Connection info for one execution backend.

    Attributes:
        id: Cluster ID (runtime cache key)
        name: Display name
        cluster_type: Which runtime factory builds handles for it
        endpoint: Control-plane address
        credential: Opaque credential blob (token, kubeconfig, ...)
        namespaces: Namespaces the control plane may use
    """
    id: str
    name: str
    cluster_type: str
    endpoint: str = ""
    credential: str = ""
    namespaces: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cluster":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            cluster_type=data["cluster_type"],
            endpoint=data.get("endpoint", ""),
            credential=data.get("credential", ""),
            namespaces=tuple(data.get("namespaces") or ()),
        )


@dataclass(frozen=True)
class Flavour:
    """Named resource template."""
    name: str
    cpu: str = ""
    mem: str = ""
    scalar_resources: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Flavour":
        return cls(
            name=data["name"],
            cpu=str(data.get("cpu", "")),
            mem=str(data.get("mem", "")),
            scalar_resources={
                k: str(v) for k, v in (data.get("scalar_resources") or {}).items()
            },
        )
