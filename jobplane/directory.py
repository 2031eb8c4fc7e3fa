"""
Queue/Cluster Directory - lookup of queues, clusters and flavours.

Implementations:
- InMemoryDirectory: built from record objects (tests, embedding)
- YamlDirectory: loaded from a YAML (or JSON) file

Example directory file:
    clusters:
      - id: c1
        cluster_type: local
        endpoint: http://127.0.0.1:6443
    queues:
      - id: q1
        name: default-queue
        cluster_id: c1
        namespace: ns1
    flavours:
      - name: flavor.small
        cpu: "1"
        mem: 1Gi
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

import yaml

from jobplane.errors import (
    ClusterNotFoundError,
    FlavourNotFoundError,
    QueueNotFoundError,
    ValidationError,
)
from jobplane.schemas import Cluster, Flavour, Queue

logger = logging.getLogger(__name__)


class Directory(ABC):
    """Lookup contract for queues, clusters and flavours."""

    @abstractmethod
    def get_queue_by_id(self, queue_id: str) -> Queue:
        """
        Raises:
            QueueNotFoundError: If the queue does not exist
        """
        pass

    @abstractmethod
    def get_cluster_by_id(self, cluster_id: str) -> Cluster:
        """
        Raises:
            ClusterNotFoundError: If the cluster does not exist
        """
        pass

    @abstractmethod
    def get_flavour_by_name(self, name: str) -> Flavour:
        """
        Raises:
            FlavourNotFoundError: If the flavour does not exist
        """
        pass

    def get_cluster_for_queue(self, queue_id: str) -> tuple[Queue, Cluster]:
        """Resolve a queue and the cluster it is bound to."""
        queue = self.get_queue_by_id(queue_id)
        return queue, self.get_cluster_by_id(queue.cluster_id)


class InMemoryDirectory(Directory):
    """Directory backed by dictionaries."""

    def __init__(
        self,
        queues: Iterable[Queue] = (),
        clusters: Iterable[Cluster] = (),
        flavours: Iterable[Flavour] = (),
    ):
        self._queues = {q.id: q for q in queues}
        self._clusters = {c.id: c for c in clusters}
        self._flavours = {f.name: f for f in flavours}

    def add_queue(self, queue: Queue) -> None:
        self._queues[queue.id] = queue

    def add_cluster(self, cluster: Cluster) -> None:
        self._clusters[cluster.id] = cluster

    def add_flavour(self, flavour: Flavour) -> None:
        self._flavours[flavour.name] = flavour

    def get_queue_by_id(self, queue_id: str) -> Queue:
        queue = self._queues.get(queue_id)
        if queue is None:
            raise QueueNotFoundError(queue_id)
        return queue

    def get_cluster_by_id(self, cluster_id: str) -> Cluster:
        cluster = self._clusters.get(cluster_id)
        if cluster is None:
            raise ClusterNotFoundError(cluster_id)
        return cluster

    def get_flavour_by_name(self, name: str) -> Flavour:
        flavour = self._flavours.get(name)
        if flavour is None:
            raise FlavourNotFoundError(name)
        return flavour

    def list_queues(self) -> list[Queue]:
        return sorted(self._queues.values(), key=lambda q: q.id)


class YamlDirectory(InMemoryDirectory):
    """
    Directory loaded once from a YAML or JSON file.

    Records that reference unknown clusters are rejected at load time so
    that lookups never hand out a queue whose cluster cannot be resolved.
    """

    def __init__(self, path: Path | str):
        self._path = Path(path).expanduser()
        data = self._load_file(self._path)
        try:
            clusters = [Cluster.from_dict(c) for c in data.get("clusters") or []]
            queues = [Queue.from_dict(q) for q in data.get("queues") or []]
            flavours = [Flavour.from_dict(f) for f in data.get("flavours") or []]
        except (KeyError, TypeError) as e:
            raise ValidationError(f"Invalid directory file {self._path}: missing/invalid field {e}")

        super().__init__(queues=queues, clusters=clusters, flavours=flavours)

        for queue in queues:
            if queue.cluster_id not in self._clusters:
                raise ValidationError(
                    f"Queue {queue.id} references unknown cluster {queue.cluster_id}"
                )
        logger.info(
            f"Loaded directory {self._path}: {len(queues)} queues, "
            f"{len(clusters)} clusters, {len(flavours)} flavours"
        )

    @staticmethod
    def _load_file(path: Path) -> dict:
        """
        Load a directory file (YAML or JSON).

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If the file cannot be parsed
        """
        if not path.exists():
            raise FileNotFoundError(f"Directory file not found: {path}")

        suffix = path.suffix.lower()
        try:
            with open(path) as f:
                if suffix == ".json":
                    data: Optional[dict] = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValidationError(f"Invalid directory file {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError(f"Directory file {path} must contain a mapping")
        return data

    @property
    def path(self) -> Path:
        return self._path
