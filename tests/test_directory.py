"""Tests for the queue/cluster directory."""

import json

import pytest
import yaml

from jobplane.directory import InMemoryDirectory, YamlDirectory
from jobplane.errors import (
    ClusterNotFoundError,
    FlavourNotFoundError,
    QueueNotFoundError,
    ValidationError,
)
from jobplane.schemas import Cluster, Queue

DIRECTORY = {
    "clusters": [
        {"id": "c1", "cluster_type": "local", "endpoint": "http://127.0.0.1:6443", "namespaces": ["ns1"]},
    ],
    "queues": [
        {"id": "q1", "name": "default-queue", "cluster_id": "c1", "namespace": "ns1"},
        {"id": "q2", "cluster_id": "c1"},
    ],
    "flavours": [
        {"name": "flavor.small", "cpu": 1, "mem": "1Gi", "scalar_resources": {"nvidia.com/gpu": 1}},
    ],
}


class TestInMemoryDirectory:

    def test_lookups(self, directory):
        assert directory.get_queue_by_id("q1").cluster_id == "c1"
        assert directory.get_cluster_by_id("c1").cluster_type == "fake"
        assert directory.get_flavour_by_name("flavor.small").mem == "1Gi"

    def test_missing_records(self, directory):
        with pytest.raises(QueueNotFoundError):
            directory.get_queue_by_id("nope")
        with pytest.raises(ClusterNotFoundError):
            directory.get_cluster_by_id("nope")
        with pytest.raises(FlavourNotFoundError):
            directory.get_flavour_by_name("nope")

    def test_cluster_for_queue(self, directory):
        queue, cluster = directory.get_cluster_for_queue("q1")
        assert queue.namespace == "ns1"
        assert cluster.id == "c1"

    def test_cluster_for_queue_with_dangling_cluster(self, directory):
        with pytest.raises(ClusterNotFoundError):
            directory.get_cluster_for_queue("q-orphan")

    def test_add_records(self):
        directory = InMemoryDirectory()
        directory.add_cluster(Cluster(id="c2", name="c2", cluster_type="local"))
        directory.add_queue(Queue(id="q2", name="q2", cluster_id="c2"))
        assert directory.get_cluster_for_queue("q2")[1].id == "c2"
        assert [q.id for q in directory.list_queues()] == ["q2"]


class TestYamlDirectory:

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "directory.yaml"
        path.write_text(yaml.safe_dump(DIRECTORY))
        directory = YamlDirectory(path)

        assert directory.path == path
        assert directory.get_queue_by_id("q1").name == "default-queue"
        assert directory.get_cluster_by_id("c1").namespaces == ("ns1",)
        flavour = directory.get_flavour_by_name("flavor.small")
        assert flavour.cpu == "1"
        assert flavour.scalar_resources == {"nvidia.com/gpu": "1"}

    def test_queue_defaults(self, tmp_path):
        path = tmp_path / "directory.yaml"
        path.write_text(yaml.safe_dump(DIRECTORY))
        queue = YamlDirectory(path).get_queue_by_id("q2")
        assert queue.name == "q2"
        assert queue.namespace == "default"

    def test_load_json(self, tmp_path):
        path = tmp_path / "directory.json"
        path.write_text(json.dumps(DIRECTORY))
        assert YamlDirectory(path).get_cluster_for_queue("q1")[1].id == "c1"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "directory.yaml"
        path.write_text("")
        assert YamlDirectory(path).list_queues() == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            YamlDirectory(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "directory.yaml"
        path.write_text("queues: [unclosed")
        with pytest.raises(ValidationError):
            YamlDirectory(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "directory.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValidationError):
            YamlDirectory(path)

    def test_missing_required_field(self, tmp_path):
        path = tmp_path / "directory.yaml"
        path.write_text(yaml.safe_dump({"clusters": [{"id": "c1"}]}))
        with pytest.raises(ValidationError, match="cluster_type"):
            YamlDirectory(path)

    def test_queue_with_unknown_cluster(self, tmp_path):
        path = tmp_path / "directory.yaml"
        path.write_text(yaml.safe_dump({"queues": [{"id": "q1", "cluster_id": "ghost"}]}))
        with pytest.raises(ValidationError, match="ghost"):
            YamlDirectory(path)
