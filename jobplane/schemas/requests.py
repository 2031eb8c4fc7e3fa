"""
Submission request/response shapes.

These mirror the JSON accepted at the API boundary (camelCase keys).
from_dict() raises ValidationError on structurally bad payloads so the
boundary never has to deal with KeyError/TypeError.
"""

from dataclasses import dataclass, field
from typing import Any

from jobplane.errors import ValidationError

from .job_config import FileSystem, MemberConfig


def _file_system(value: Any, field_name: str) -> FileSystem:
    if value is None:
        return FileSystem()
    if not isinstance(value, dict):
        raise ValidationError(f"{field_name} must be an object")
    return FileSystem.from_dict(value)


def _str_map(value: Any, field_name: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field_name} must be an object")
    return {str(k): str(v) for k, v in value.items()}


@dataclass
class SchedulingPolicy:
    queue: str = ""
    priority: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "SchedulingPolicy":
        if not isinstance(data, dict):
            raise ValidationError("schedulingPolicy must be an object")
        return cls(queue=data.get("queue", ""), priority=data.get("priority", ""))


@dataclass
class CommonJobInfo:
    """Fields shared by every create request."""
    id: str = ""
    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    scheduling_policy: SchedulingPolicy = field(default_factory=SchedulingPolicy)
    user_name: str = ""

    @staticmethod
    def _kwargs(data: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": data.get("id", ""),
            "name": data.get("name", ""),
            "labels": _str_map(data.get("labels"), "labels"),
            "annotations": _str_map(data.get("annotations"), "annotations"),
            "scheduling_policy": SchedulingPolicy.from_dict(data.get("schedulingPolicy") or {}),
            "user_name": data.get("userName", ""),
        }


@dataclass
class CreateSingleJobRequest(CommonJobInfo):
    """Request to create a single-container job."""
    flavour: str = ""
    file_system: FileSystem = field(default_factory=FileSystem)
    extra_file_systems: list[FileSystem] = field(default_factory=list)
    image: str = ""
    env: dict[str, str] = field(default_factory=dict)
    command: str = ""
    args: list[str] = field(default_factory=list)
    port: int = 0
    extension_template: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CreateSingleJobRequest":
        if not isinstance(data, dict):
            raise ValidationError("request body must be a JSON object")

        # flavour may be sent as {"name": ...} or a bare name
        flavour = data.get("flavour") or ""
        if isinstance(flavour, dict):
            flavour = flavour.get("name", "")

        args = data.get("args") or []
        if not isinstance(args, list):
            raise ValidationError("args must be a list")
        extra_fs = data.get("extraFileSystems") or []
        if not isinstance(extra_fs, list):
            raise ValidationError("extraFileSystems must be a list")

        try:
            port = int(data.get("port") or 0)
        except (TypeError, ValueError):
            raise ValidationError(f"port must be an integer, got {data.get('port')!r}")

        return cls(
            flavour=str(flavour),
            file_system=_file_system(data.get("fileSystem"), "fileSystem"),
            extra_file_systems=[_file_system(fs, "extraFileSystems item") for fs in extra_fs],
            image=data.get("image", ""),
            env=_str_map(data.get("env"), "env"),
            command=data.get("command", ""),
            args=[str(a) for a in args],
            port=port,
            extension_template=data.get("extensionTemplate", ""),
            **cls._kwargs(data),
        )


@dataclass
class CreateDistributedJobRequest(CommonJobInfo):
    """Request to create a multi-member job. Accepted shape only."""
    framework: str = ""
    members: list[MemberConfig] = field(default_factory=list)
    extension_template: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CreateDistributedJobRequest":
        if not isinstance(data, dict):
            raise ValidationError("request body must be a JSON object")
        try:
            members = [MemberConfig.from_dict(m) for m in data.get("members") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"invalid members: {e}")
        return cls(
            framework=data.get("framework", ""),
            members=members,
            extension_template=data.get("extensionTemplate", ""),
            **cls._kwargs(data),
        )


@dataclass
class CreateWorkflowJobRequest(CreateDistributedJobRequest):
    """Request to create a workflow-composed job. Accepted shape only."""
    pass


@dataclass
class CreateJobResponse:
    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id}
