import json

import pytest

from common.json_utils import JsonFileType, check_json_file, get_nested, load_json_document


def test_check_json_file_valid(tmp_path):
    f = tmp_path / "valid.json"
    f.write_text(json.dumps({"key": "value"}))
    assert check_json_file(f) == JsonFileType.VALID_JSON


def test_check_json_file_malformed(tmp_path):
    f = tmp_path / "malformed.json"
    f.write_text('{"key": "value"')
    assert check_json_file(f) == JsonFileType.MALFORMED_JSON


def test_check_json_file_not_json(tmp_path):
    f = tmp_path / "not_json.txt"
    f.write_text("This is not a JSON file.")
    assert check_json_file(f) == JsonFileType.NOT_JSON


def test_check_json_file_missing(tmp_path):
    assert check_json_file(tmp_path / "missing.json") == JsonFileType.NOT_JSON


def test_load_json_document(tmp_path):
    f = tmp_path / "doc.json"
    f.write_text('{"attributes": {"crowbar": {"realm": "Crowbar"}}}')
    assert load_json_document(f)["attributes"]["crowbar"]["realm"] == "Crowbar"


def test_load_json_document_rejects_non_object(tmp_path):
    f = tmp_path / "list.json"
    f.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_json_document(f)


def test_get_nested():
    document = {"attributes": {"network": {"ranges": {"admin": {"start": "10.0.0.1"}}}}}
    assert get_nested(document, "attributes.network.ranges.admin.start") == "10.0.0.1"
    assert get_nested(document, "attributes.network.missing") is None
    assert get_nested(document, "attributes.network.ranges.admin.start.deeper", "x") == "x"
