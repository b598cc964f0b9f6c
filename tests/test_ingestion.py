# db-drift/tests/test_ingestion.py
import pytest

from dbdrift.ingest import SnapshotError, SnapshotReader, classify
from dbdrift.records import Missing, RecordList, RowSet, SingleRecord, Unrecognized
from utility import examples_dir, write_json


# classify: maps each payload shape onto the adapter-boundary union.
@pytest.mark.parametrize("payload,kind", [
    (None, Missing),
    ({"error": "denied"}, Missing),
    ({"error": "denied", "code": 229}, Missing),
    ({"columns": ["a"], "rows": [[1]]}, RowSet),
    ({"option_name": "x", "value": 1}, SingleRecord),
    ([{"a": 1}], RecordList),
    ("text", Unrecognized),
    ({"columns": "a", "rows": []}, Unrecognized),
])
def test_classify_shapes(payload, kind):
    assert isinstance(classify(payload), kind)


# classify: an "error" key next to real fields is data, not a failed fetch.
def test_classify_error_column_is_data():
    assert isinstance(classify({"error": "x", "name": "y"}), SingleRecord)


# classify: the failure message is kept as the Missing reason.
def test_classify_error_reason():
    assert classify({"error": "permission denied"}).reason == "permission denied"


# SnapshotReader: reads the envelope layout with metadata.
def test_reader_envelope():
    snap = SnapshotReader().read(str(examples_dir() / "source.json"))
    assert snap.database == "TestSourceDB"
    assert snap.label == "sqlsrv01/TestSourceDB"
    assert isinstance(snap.results["Columns"], RowSet)
    assert isinstance(snap.results["Tables"], RecordList)


# SnapshotReader: a bare mapping of categories is accepted and named after default_name.
def test_reader_bare_mapping(tmp_path):
    p = write_json(tmp_path, {"Schemas": [{"name": "dbo"}]}, "bare.json")
    snap = SnapshotReader(default_name="prod").read(str(p))
    assert snap.name == "prod"
    assert snap.label == "prod"
    assert list(snap.results) == ["Schemas"]


# SnapshotReader: failed fetches become Missing with their reason.
def test_reader_failed_fetch():
    snap = SnapshotReader().read(str(examples_dir() / "target.json"))
    assert isinstance(snap.results["Synonyms"], Missing)
    assert "permission denied" in snap.results["Synonyms"].reason


# SnapshotReader: unreadable or malformed files raise SnapshotError.
@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"categories": []}'])
def test_reader_bad_files(tmp_path, content):
    p = tmp_path / "bad.json"
    p.write_text(content, encoding="utf-8")
    with pytest.raises(SnapshotError):
        SnapshotReader().read(str(p))


# SnapshotReader: a missing file raises SnapshotError.
def test_reader_missing_file(tmp_path):
    with pytest.raises(SnapshotError):
        SnapshotReader().read(str(tmp_path / "nope.json"))
