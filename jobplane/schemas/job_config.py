"""
JobConfig schemas - what a job runs and where.

JobConfig is a tagged variant: one dataclass per JobType, all sharing the
same capability surface (name, env, queue/cluster/namespace binding,
flavour, priority, user name, filesystems). The orchestrator and the
builder only use that surface, never a concrete variant.

Serialization is tagged by ``job_type``; use job_config_from_dict() to
get the right variant back.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from .status import JobType


@dataclass
class FileSystem:
    """Filesystem reference attached to a job."""
    name: str = ""
    mount_path: str = ""
    sub_path: str = ""
    read_only: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "mount_path": self.mount_path,
            "sub_path": self.sub_path,
            "read_only": self.read_only,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "FileSystem":
        data = data or {}
        return cls(
            name=data.get("name", ""),
            mount_path=data.get("mount_path", data.get("mountPath", "")),
            sub_path=data.get("sub_path", data.get("subPath", "")),
            read_only=bool(data.get("read_only", data.get("readOnly", False))),
        )


@dataclass
class JobConfig(ABC):
    """
    Common configuration shared by every job kind.

    Attributes:
        name: Display name of the job
        labels: Labels propagated to the backend object
        annotations: Annotations propagated to the backend object
        env: Environment variables for the job containers
        image: Container image
        command: Entrypoint command
        args: Command arguments
        port: Exposed port (0 for none)
        flavour: Resolved resource flavour name
        file_system: Primary filesystem reference
        extra_file_systems: Additional filesystem references
        priority: Priority label (low/normal/high)
        queue_id: Queue the job was submitted to
        cluster_id: Cluster the queue is bound to (set by the builder)
        namespace: Namespace inside the cluster (set by the builder)
        user_name: Submitting user
        fs_id: Deterministic filesystem ID for mount resolution
    """
    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    image: str = ""
    command: str = ""
    args: list[str] = field(default_factory=list)
    port: int = 0
    flavour: str = ""
    file_system: FileSystem = field(default_factory=FileSystem)
    extra_file_systems: list[FileSystem] = field(default_factory=list)
    priority: str = ""
    queue_id: str = ""
    cluster_id: str = ""
    namespace: str = ""
    user_name: str = ""
    fs_id: str = ""

    @property
    @abstractmethod
    def job_type(self) -> JobType:
        """Tag selecting this variant."""

    def set_env(self, key: str, value: str) -> None:
        self.env[key] = value

    def get_env(self, key: str, default: str = "") -> str:
        return self.env.get(key, default)

    def file_systems(self) -> list[FileSystem]:
        """Primary filesystem (if named) followed by the extra ones."""
        result = []
        if self.file_system.name:
            result.append(self.file_system)
        result.extend(self.extra_file_systems)
        return result

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "job_type": self.job_type.value,
            "name": self.name,
            "labels": dict(self.labels),
            "annotations": dict(self.annotations),
            "env": dict(self.env),
            "image": self.image,
            "command": self.command,
            "args": list(self.args),
            "port": self.port,
            "flavour": self.flavour,
            "file_system": self.file_system.to_dict(),
            "extra_file_systems": [fs.to_dict() for fs in self.extra_file_systems],
            "priority": self.priority,
            "queue_id": self.queue_id,
            "cluster_id": self.cluster_id,
            "namespace": self.namespace,
            "user_name": self.user_name,
            "fs_id": self.fs_id,
        }

    @classmethod
    def _common_kwargs(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": data.get("name", ""),
            "labels": dict(data.get("labels") or {}),
            "annotations": dict(data.get("annotations") or {}),
            "env": dict(data.get("env") or {}),
            "image": data.get("image", ""),
            "command": data.get("command", ""),
            "args": list(data.get("args") or []),
            "port": int(data.get("port") or 0),
            "flavour": data.get("flavour", ""),
            "file_system": FileSystem.from_dict(data.get("file_system")),
            "extra_file_systems": [
                FileSystem.from_dict(fs) for fs in data.get("extra_file_systems") or []
            ],
            "priority": data.get("priority", ""),
            "queue_id": data.get("queue_id", ""),
            "cluster_id": data.get("cluster_id", ""),
            "namespace": data.get("namespace", ""),
            "user_name": data.get("user_name", ""),
            "fs_id": data.get("fs_id", ""),
        }


@dataclass
class SingleJobConfig(JobConfig):
    """Single-container job."""

    @property
    def job_type(self) -> JobType:
        return JobType.SINGLE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SingleJobConfig":
        return cls(**cls._common_kwargs(data))


@dataclass
class MemberConfig:
    """One replica group of a multi-member job."""
    role: str
    replicas: int = 1
    image: str = ""
    command: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    flavour: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "replicas": self.replicas,
            "image": self.image,
            "command": self.command,
            "args": list(self.args),
            "env": dict(self.env),
            "flavour": self.flavour,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemberConfig":
        return cls(
            role=data["role"],
            replicas=int(data.get("replicas", 1)),
            image=data.get("image", ""),
            command=data.get("command", ""),
            args=list(data.get("args") or []),
            env=dict(data.get("env") or {}),
            flavour=data.get("flavour", ""),
        )


@dataclass
class DistributedJobConfig(JobConfig):
    """Multi-member job (e.g. parameter-server / collective training)."""
    framework: str = ""
    members: list[MemberConfig] = field(default_factory=list)

    @property
    def job_type(self) -> JobType:
        return JobType.DISTRIBUTED

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["framework"] = self.framework
        result["members"] = [m.to_dict() for m in self.members]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DistributedJobConfig":
        return cls(
            framework=data.get("framework", ""),
            members=[MemberConfig.from_dict(m) for m in data.get("members") or []],
            **cls._common_kwargs(data),
        )


@dataclass
class WorkflowJobConfig(JobConfig):
    """Job composed of members driven by a workflow engine."""
    framework: str = ""
    members: list[MemberConfig] = field(default_factory=list)

    @property
    def job_type(self) -> JobType:
        return JobType.WORKFLOW

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["framework"] = self.framework
        result["members"] = [m.to_dict() for m in self.members]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkflowJobConfig":
        return cls(
            framework=data.get("framework", ""),
            members=[MemberConfig.from_dict(m) for m in data.get("members") or []],
            **cls._common_kwargs(data),
        )


_CONFIG_TYPES: dict[JobType, type[JobConfig]] = {
    JobType.SINGLE: SingleJobConfig,
    JobType.DISTRIBUTED: DistributedJobConfig,
    JobType.WORKFLOW: WorkflowJobConfig,
}


def job_config_from_dict(data: dict[str, Any]) -> JobConfig:
    """
    Deserialize a JobConfig, dispatching on its ``job_type`` tag.

    Raises:
        ValueError: If the tag is missing or unknown
    """
    tag = data.get("job_type")
    if tag is None:
        raise ValueError("JobConfig dict is missing 'job_type'")
    config_cls = _CONFIG_TYPES[JobType(tag)]
    return config_cls.from_dict(data)
