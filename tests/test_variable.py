import pytest
import yaml

from booster.variable import Definition, FileStore


def test_load_non_existent(tmp_path):
    store = FileStore(tmp_path / "nonexistent" / "values.yaml")
    assert store.load() == {}


def test_save_creates_parent_directory(tmp_path):
    path = tmp_path / "subdir" / "nested" / "values.yaml"
    FileStore(path).save({"Name": "Alice"})
    assert path.is_file()


def test_round_trip(tmp_path):
    store = FileStore(tmp_path / "values.yaml")
    original = {"Name": "Alice", "Email": "alice@example.com"}
    store.save(original)
    assert store.load() == original


def test_save_overwrites_existing(tmp_path):
    store = FileStore(tmp_path / "values.yaml")
    store.save({"Name": "Alice"})
    store.save({"Name": "Bob", "Email": "bob@example.com"})
    loaded = store.load()
    assert loaded["Name"] == "Bob"
    assert loaded["Email"] == "bob@example.com"


def test_path():
    path = "/some/path/values.yaml"
    assert FileStore(path).path == path


def test_empty_file_loads_as_empty(tmp_path):
    path = tmp_path / "values.yaml"
    path.write_text("", encoding="utf-8")
    assert FileStore(path).load() == {}


def test_non_mapping_file_is_rejected(tmp_path):
    path = tmp_path / "values.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        FileStore(path).load()


def test_malformed_yaml_raises(tmp_path):
    path = tmp_path / "values.yaml"
    path.write_text("key: [unclosed\n", encoding="utf-8")
    with pytest.raises(yaml.YAMLError):
        FileStore(path).load()


def test_scalar_values_load_as_strings(tmp_path):
    path = tmp_path / "values.yaml"
    path.write_text("Port: 8080\nEnabled: true\n", encoding="utf-8")
    assert FileStore(path).load() == {"Port": "8080", "Enabled": "true"}


def test_definition_defaults():
    definition = Definition("Name")
    assert definition.prompt == ""
    assert definition.default == ""