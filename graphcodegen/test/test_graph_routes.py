import pytest
from fastapi.testclient import TestClient

from graphcodegen.server.main import app
from graphcodegen.server.state import EditorState, get_state
from graphcodegen.settings import Settings


def port(node_id, index, port_type):
    return {"nodeId": node_id, "portIndex": index, "portType": port_type}


class TestGraphRoutes:

    @pytest.fixture
    def state(self, registry_doc):
        state = EditorState(Settings())
        state.add_registry(registry_doc)
        return state

    @pytest.fixture
    def client(self, state):
        """TestClient wired to a fresh editor state."""
        app.dependency_overrides[get_state] = lambda: state
        yield TestClient(app)
        app.dependency_overrides.clear()

    def _node(self, client, category, type_name, **extra):
        response = client.post("/api/nodes", json=dict(category=category, type=type_name, **extra))
        assert response.status_code == 201
        return response.json()

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_registry_summary(self, client):
        body = client.get("/api/registry").json()
        assert body["loaded"] is True
        assert "print" in body["categories"]["flow"]["nodes"]

    def test_merge_registry(self, client):
        response = client.post("/api/registry", json={
            "nodeCategories": {"flow": {"nodes": {"halt": {"title": "Halt", "inputs": [{"type": "exec", "code": "halt();"}]}}}},
        })
        assert response.status_code == 200
        assert "halt" in response.json()["registry"]["categories"]["flow"]["nodes"]

    def test_merge_invalid_registry(self, client):
        response = client.post("/api/registry", json={
            "nodeCategories": {"flow": {"nodes": {"bad": {"inputs": [{"name": "typeless"}]}}}},
        })
        assert response.status_code == 400

    def test_failed_registry_merge_changes_nothing(self, client):
        before = client.get("/api/registry").json()

        response = client.post("/api/registry", json={
            "codeGeneration": {"commentStyle": "#"},
            "nodeCategories": {
                "good": {"nodes": {"ok": {"title": "Ok"}}},
                "bad": {"nodes": {"broken": {"inputs": [{"name": "typeless"}]}}},
            },
        })

        assert response.status_code == 400
        assert client.get("/api/registry").json() == before

    def test_node_types(self, client):
        types = {(t["category"], t["type"]): t for t in client.get("/api/node-types").json()}

        assert types[("math", "constant")]["valueType"] == "float"
        assert types[("events", "on_start")]["inputs"] == []
        assert types[("math", "add")]["color"] == "#123456"

    def test_create_node(self, client):
        node = self._node(client, "math", "add", x=10, y=20)

        assert node["id"] == 0
        assert (node["x"], node["y"]) == (10, 20)
        assert client.get("/api/nodes/0").json()["title"] == "Add"

    def test_create_unknown_node(self, client):
        response = client.post("/api/nodes", json={"category": "math", "type": "nope"})
        assert response.status_code == 404

    def test_create_node_with_auto_connect(self, client):
        self._node(client, "math", "add")
        node = self._node(client, "math", "constant", connectFrom=port(0, 1, "input"))

        assert node["link"]["from"] == port(1, 0, "output")
        assert node["link"]["to"] == port(0, 1, "input")

    def test_move_and_set_value(self, client):
        self._node(client, "math", "constant")

        moved = client.put("/api/nodes/0/position", json={"x": 5, "y": 6}).json()
        assert (moved["x"], moved["y"]) == (5, 6)

        updated = client.put("/api/nodes/0/value", json={"value": 2.5}).json()
        assert updated["value"] == 2.5

    def test_set_value_without_slot(self, client):
        self._node(client, "math", "add")
        assert client.put("/api/nodes/0/value", json={"value": 1}).status_code == 400

    def test_unknown_node_ids(self, client):
        assert client.get("/api/nodes/9").status_code == 404
        assert client.delete("/api/nodes/9").status_code == 404
        assert client.put("/api/nodes/9/position", json={"x": 0, "y": 0}).status_code == 404
        assert client.put("/api/nodes/9/value", json={"value": 0}).status_code == 404

    def test_links(self, client):
        self._node(client, "math", "constant")
        self._node(client, "math", "add")

        response = client.post("/api/links", json={"from": port(0, 0, "output"), "to": port(1, 0, "input")})
        assert response.status_code == 201
        assert response.json()["id"] == 0

        duplicate = client.post("/api/links", json={"from": port(1, 0, "input"), "to": port(0, 0, "output")})
        assert duplicate.status_code == 409

        assert client.delete("/api/links/0").status_code == 200
        assert client.delete("/api/links/0").status_code == 404

    def test_delete_node_cascades(self, client):
        self._node(client, "flow", "print")
        self._node(client, "flow", "done")
        client.post("/api/links", json={"from": port(0, 0, "output"), "to": port(1, 0, "input")})

        response = client.delete("/api/nodes/1")

        assert response.json() == {"removedLinks": [0]}
        assert client.get("/api/graph").json()["connections"] == []

    def test_generate(self, client, state):
        self._node(client, "flow", "print")
        self._node(client, "flow", "done")
        client.post("/api/links", json={"from": port(0, 0, "output"), "to": port(1, 0, "input")})

        response = client.post("/api/generate")

        assert response.status_code == 200
        assert response.json()["code"].endswith("print(0);\ndone();")
        assert len(state.graph.links) == 1

    def test_generate_without_entry_point(self, client):
        response = client.post("/api/generate")
        assert response.status_code == 422
        assert "No entry point" in response.json()["detail"]

    def test_put_and_get_graph(self, client):
        document = {
            "nodes": [
                {"id": 0, "type": "print", "category": "flow", "x": 0, "y": 0},
                {"id": 1, "type": "done", "category": "flow", "x": 100, "y": 0},
            ],
            "connections": [{"id": 0, "from": port(0, 0, "output"), "to": port(1, 0, "input")}],
        }

        report = client.put("/api/graph", json=document).json()
        assert report["nodesLoaded"] == 2
        assert report["connectionsLoaded"] == 1

        exported = client.get("/api/graph").json()
        assert exported["nodes"] == document["nodes"]
        assert exported["connections"] == document["connections"]

    def test_put_graph_skips_malformed_node(self, client):
        report = client.put("/api/graph", json={
            "nodes": [
                {"id": 0, "type": "done", "category": "flow", "x": 0, "y": 0},
                {"id": 1, "type": "done", "category": ["flow"], "x": 0, "y": 0},
                {"id": 2, "type": "done", "category": "flow", "x": 0, "y": 0},
            ],
        }).json()

        assert report["nodesLoaded"] == 2
        assert [s["id"] for s in report["skippedNodes"]] == [1]
        assert [n["id"] for n in client.get("/api/graph").json()["nodes"]] == [0, 2]

    def test_put_invalid_graph(self, client):
        assert client.put("/api/graph", json={"connections": []}).status_code == 400

    def test_clear_graph(self, client):
        self._node(client, "flow", "print")
        assert client.delete("/api/graph").status_code == 204
        assert client.get("/api/graph").json()["nodes"] == []
