"""
Backend orchestration tests: store -> builder wiring and configuration.
"""

import pytest

from ohm.contracts.base import ErrorCode
from ohm.engine import (
    BackendConfig,
    NO_MATCH_MESSAGE,
    TrafficTopologyBackend,
    cors_origins_from_env,
)
from ohm.storage import InMemoryTrafficBackend, TrafficStoreEngine


def make_backend(documents, **config):
    store = TrafficStoreEngine(backend=InMemoryTrafficBackend(documents))
    return TrafficTopologyBackend(BackendConfig(**config), store=store)


class TestTrafficGraph:

    def test_builds_fresh_graph_per_call(self):
        backend = make_backend([{"method": "GET", "host": "example.com", "path": "/a"}])

        first = backend.traffic_graph("example")
        second = backend.traffic_graph("example")

        assert first.success and second.success
        assert first.graph is not second.graph
        assert first.graph.node_keys() == second.graph.node_keys()
        assert first.record_count == 1

    def test_no_match_error(self):
        result = make_backend([]).traffic_graph("example")

        assert not result.success
        assert result.error.code is ErrorCode.NO_MATCH
        assert result.error.message == NO_MATCH_MESSAGE
        assert ("host", "example") in result.error.context

    def test_only_undecodable_records_is_no_match(self):
        result = make_backend([{"host": 42}, {"host": "x.org", "path": 1}]).traffic_graph()

        assert result.error.code is ErrorCode.NO_MATCH
        assert result.dropped == 2

    def test_dropped_records_are_reported(self):
        result = make_backend([
            {"method": "GET", "host": "example.com", "path": "/a"},
            {"method": ["GET"], "host": "example.com", "path": "/b"},
        ]).traffic_graph()

        assert result.success
        assert result.dropped == 1
        assert not result.graph.has_node("example.comb")


class TestTrafficRecords:

    def test_default_page_size(self):
        backend = make_backend(
            [{"host": f"h{i:02d}.example.com"} for i in range(15)],
            default_page_size=10,
        )

        assert len(backend.traffic_records().records) == 10
        assert len(backend.traffic_records(page=1).records) == 5


class TestConfig:

    def test_defaults(self):
        config = BackendConfig()

        assert config.graph_record_limit == 100
        assert config.default_page_size == 10
        assert config.storage.backend_type == "memory"
        assert config.cors_origins == ("http://localhost:3001",)

    def test_from_env(self):
        config = BackendConfig.from_env({
            "OHM_GRAPH_LIMIT": "25",
            "OHM_CORS_ORIGINS": "http://a.test, http://b.test,",
            "OHM_STORE_BACKEND": "sqlite",
            "OHM_DATABASE_PATH": "/tmp/ohm.db",
        })

        assert config.graph_record_limit == 25
        assert config.cors_origins == ("http://a.test", "http://b.test")
        assert config.storage.backend_type == "sqlite"
        assert config.storage.database_path == "/tmp/ohm.db"

    def test_malformed_limit_is_rejected(self):
        with pytest.raises(ValueError):
            BackendConfig.from_env({"OHM_GRAPH_LIMIT": "many"})

    @pytest.mark.parametrize("field", [
        "graph_record_limit", "default_page_size", "max_page_size",
    ])
    @pytest.mark.parametrize("value", [0, -1])
    def test_non_positive_limits_are_rejected(self, field, value):
        with pytest.raises(ValueError, match=field):
            BackendConfig(**{field: value})

    def test_negative_limit_from_env_is_rejected(self):
        with pytest.raises(ValueError):
            BackendConfig.from_env({"OHM_GRAPH_LIMIT": "-1"})

    def test_cors_origins_from_env(self):
        assert cors_origins_from_env({}) == ("http://localhost:3001",)
        assert cors_origins_from_env({"OHM_CORS_ORIGINS": " http://a.test ,"}) == (
            "http://a.test",
        )
