import pytest

import kdeploy.fieldpath as fieldpath


class TestParse:
    @pytest.mark.parametrize(
        "path, keys",
        [
            ("spec", ["spec"]),
            ("spec.clusterIP", ["spec", "clusterIP"]),
            ("$.spec.clusterIP", ["spec", "clusterIP"]),
            ("spec.ports[0].nodePort", ["spec", "ports", 0, "nodePort"]),
            (
                "metadata.labels[app.kubernetes.io/name]",
                ["metadata", "labels", "app.kubernetes.io/name"],
            ),
        ],
    )
    def test_valid(self, path, keys):
        assert fieldpath.parse(path) == (keys, False)

    @pytest.mark.parametrize("path", ["", "$", "spec..foo", "spec[0", "spec]"])
    def test_invalid(self, path):
        _, err = fieldpath.parse(path)
        assert err


class TestReadPut:
    def test_read(self):
        doc = {"spec": {"ports": [{"port": 80}], "clusterIP": None}}
        assert fieldpath.read(doc, ["spec", "ports", 0, "port"]) == (80, False)
        assert fieldpath.read(doc, ["spec", "clusterIP"]) == (None, False)

        # Missing keys, out of range indices and type mismatches.
        assert fieldpath.read(doc, ["spec", "foo"]) == (None, True)
        assert fieldpath.read(doc, ["spec", "ports", 1]) == (None, True)
        assert fieldpath.read(doc, ["spec", "ports", "port"]) == (None, True)
        assert fieldpath.read(doc, ["spec", 0]) == (None, True)

    def test_put_creates_maps(self):
        doc: dict = {"metadata": {}}
        assert not fieldpath.put(doc, ["spec", "selector", "app"], "demo")
        assert doc == {"metadata": {}, "spec": {"selector": {"app": "demo"}}}

        # Replace a null value.
        doc = {"spec": {"clusterIP": None}}
        assert not fieldpath.put(doc, ["spec", "clusterIP"], "10.0.0.1")
        assert doc == {"spec": {"clusterIP": "10.0.0.1"}}

    def test_put_into_list(self):
        doc = {"spec": {"ports": [{"port": 80}]}}
        assert not fieldpath.put(doc, ["spec", "ports", 0, "nodePort"], 30000)
        assert doc == {"spec": {"ports": [{"port": 80, "nodePort": 30000}]}}

    def test_put_invalid(self):
        # Lists are never created or extended.
        doc: dict = {"spec": {"ports": []}}
        assert fieldpath.put(doc, ["spec", "ports", 0, "nodePort"], 1)
        assert fieldpath.put(doc, ["spec", "other", 0], 1)
        assert fieldpath.put(doc, ["spec", "ports", "name"], 1)
        assert fieldpath.put(doc, [], 1)
        assert doc == {"spec": {"ports": []}}
