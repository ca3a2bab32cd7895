import logging
import threading

from pydantic import BaseModel

from api_schema_infer.adapters.registry import AdapterSet
from api_schema_infer.config import InferConfig
from api_schema_infer.schema.classifier import classify
from api_schema_infer.store.snapshots import SnapshotStore


class CreateUser(BaseModel):
    name: str
    age: int | None = None


class SearchQuery(BaseModel):
    page: int = 1
    q: str | None = None


class TestRecord:
    def test_record_and_history(self):
        store = SnapshotStore()
        first = store.record("GET", "/users", response_schema=classify({"id": 1}))
        second = store.record("GET", "/users", response_schema=classify({"id": 2}))
        assert first is not None and second is not None
        assert store.history("GET", "/users") == (first, second)
        assert len(store) == 2

    def test_unknown_route_is_empty(self):
        assert SnapshotStore().history("GET", "/nothing") == ()

    def test_method_is_case_insensitive(self):
        store = SnapshotStore()
        store.record("post", "/orders", request_schema={"type": "object", "properties": {}})
        assert len(store.history("POST", "/orders")) == 1
        assert len(store.history("post", "/orders")) == 1

    def test_disabled_capture_is_noop(self):
        store = SnapshotStore(InferConfig(capture_enabled=False))
        assert store.record("GET", "/users", response_schema={"type": "string"}) is None
        assert len(store) == 0
        assert store.routes() == []

    def test_duplicates_skipped(self):
        store = SnapshotStore()
        fragment = classify({"id": 1})
        assert store.record("GET", "/users", response_schema=fragment) is not None
        assert store.record("GET", "/users", response_schema=fragment) is None
        assert len(store.history("GET", "/users")) == 1

    def test_duplicates_kept_without_dedupe(self):
        store = SnapshotStore(InferConfig(dedupe=False))
        fragment = classify({"id": 1})
        store.record("GET", "/users", response_schema=fragment)
        store.record("GET", "/users", response_schema=fragment)
        assert len(store.history("GET", "/users")) == 2

    def test_non_mapping_fragment_dropped(self):
        store = SnapshotStore()
        sample = store.record("GET", "/users", request_schema="oops", response_schema={"type": "null"})
        assert sample.request_schema is None
        assert sample.response_schema == {"type": "null"}

    def test_unhashable_fragment_not_recorded(self, caplog):
        fragment = {"type": "object", "properties": {}}
        fragment["properties"]["self"] = fragment
        store = SnapshotStore()
        with caplog.at_level(logging.WARNING):
            assert store.record("GET", "/loop", response_schema=fragment) is None
        assert "not recorded" in caplog.text
        assert store.history("GET", "/loop") == ()

    def test_caller_mutation_does_not_leak(self):
        store = SnapshotStore()
        fragment = classify({"id": 1})
        store.record("GET", "/users", response_schema=fragment)
        fragment["properties"]["id"]["example"] = 999
        stored = store.history("GET", "/users")[0]
        assert stored.response_schema["properties"]["id"]["example"] == 1


class TestRetention:
    def test_oldest_evicted(self):
        store = SnapshotStore(InferConfig(max_samples_per_route=2))
        for i in range(3):
            store.record("GET", "/users", response_schema=classify({"id": i}))
        examples = [s.response_schema["properties"]["id"]["example"] for s in store.history("GET", "/users")]
        assert examples == [1, 2]

    def test_evicted_hash_forgotten(self):
        store = SnapshotStore(InferConfig(max_samples_per_route=1))
        store.record("GET", "/users", response_schema=classify({"id": 1}))
        store.record("GET", "/users", response_schema=classify({"id": 2}))
        assert store.record("GET", "/users", response_schema=classify({"id": 1})) is not None

    def test_required_recomputed_after_eviction(self):
        store = SnapshotStore(InferConfig(max_samples_per_route=2))
        store.record("GET", "/users", response_schema=classify({"a": 1}))
        store.record("GET", "/users", response_schema=classify({"a": 2, "b": 1}))
        assert store.merge("GET", "/users")["response_schema"]["required"] == ["a"]
        store.record("GET", "/users", response_schema=classify({"a": 3, "b": 2}))
        assert store.merge("GET", "/users")["response_schema"]["required"] == ["a", "b"]

    def test_clear(self):
        store = SnapshotStore()
        store.record("GET", "/users", response_schema={"type": "string"})
        store.clear()
        assert len(store) == 0
        assert store.record("GET", "/users", response_schema={"type": "string"}) is not None


class TestConvenience:
    def test_record_payload(self):
        store = SnapshotStore()
        sample = store.record_payload("POST", "/users", request={"name": "a"}, response={"id": 1})
        assert sample.request_schema["properties"]["name"]["type"] == "string"
        assert sample.response_schema["properties"]["id"]["type"] == "number"

    def test_record_payload_without_body(self):
        sample = SnapshotStore().record_payload("DELETE", "/users/{id}")
        assert sample.request_schema is None
        assert sample.response_schema is None

    def test_record_declared(self):
        store = SnapshotStore()
        sample = store.record_declared("POST", "/users", AdapterSet.default(), request=CreateUser)
        assert sample.request_schema["required"] == ["name"]
        assert sample.request_schema["properties"]["age"] == {"type": "integer"}

    def test_record_declared_optional_fields_stay_optional(self):
        store = SnapshotStore()
        declared = store.record_declared("GET", "/search", AdapterSet.default(), request=SearchQuery)
        assert declared.request_schema["required"] == []
        store.record_payload("GET", "/search", request={"page": 2, "q": "lamp"})
        merged = store.merge("GET", "/search")
        assert "required" not in merged["request_schema"]
        assert store.patterns("GET", "/search", side="request").optional_fields == ["page", "q"]

    def test_record_declared_unrecognized(self):
        sample = SnapshotStore().record_declared("POST", "/users", AdapterSet.default(), request=42)
        assert sample.request_schema is None

    def test_routes_and_all_samples(self):
        store = SnapshotStore()
        store.record("GET", "/a", response_schema={"type": "string", "example": "x"})
        store.record("POST", "/b", request_schema={"type": "string", "example": "y"})
        assert store.routes() == [("GET", "/a"), ("POST", "/b")]
        assert set(store.all_samples()) == {("GET", "/a"), ("POST", "/b")}

    def test_merge_and_patterns(self):
        store = SnapshotStore()
        store.record_payload("GET", "/users", response={"id": 1, "role": "admin"})
        store.record_payload("GET", "/users", response={"id": 2, "role": "member", "bio": "hi"})
        merged = store.merge("GET", "/users")
        assert merged["response_schema"]["required"] == ["id", "role"]
        report = store.patterns("GET", "/users")
        assert report.optional_fields == ["bio"]
        assert report.enum_candidates["role"] == ["admin", "member"]

    def test_merge_unknown_route(self):
        assert SnapshotStore().merge("GET", "/none") == {}


class TestConcurrency:
    def test_concurrent_record_and_history(self):
        store = SnapshotStore()
        errors = []
        done = threading.Event()

        def writer(n: int):
            for i in range(50):
                store.record_payload("GET", "/items", response={"writer": n, "i": i})

        def reader():
            while not done.is_set():
                for sample in store.history("GET", "/items"):
                    if not sample.hash or sample.response_schema is None:
                        errors.append(sample)

        readers = [threading.Thread(target=reader) for _ in range(2)]
        writers = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in readers + writers:
            t.start()
        for t in writers:
            t.join()
        done.set()
        for t in readers:
            t.join()

        assert errors == []
        assert len(store.history("GET", "/items")) == 400
