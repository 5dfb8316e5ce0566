import json

from bwt_pipeline import SENTINEL, main


def test_compress_then_decompress(tmp_path, capsys):
    src = tmp_path / "input.txt"
    src.write_text("banana bandana\n", encoding="utf-8")
    assert main([str(src), "--stats"]) == 0
    record = tmp_path / "input.txt.bwt.json"
    steps = json.loads(record.read_text(encoding="utf-8"))
    assert [s["name"] for s in steps] == ["Original", "BWT", "MTF", "RLE"]
    out = capsys.readouterr().out
    assert "Compressed 15 chars" in out
    assert "overall" in out

    restored = tmp_path / "restored.txt"
    assert main([str(record), "-d", "-o", str(restored), "--inverse", "table"]) == 0
    assert restored.read_text(encoding="utf-8") == "banana bandana\n"


def test_doubling_sort_and_custom_sentinel(tmp_path):
    src = tmp_path / "in.txt"
    src.write_text("mississippi", encoding="utf-8")
    dst = tmp_path / "rec.json"
    assert main([str(src), "-o", str(dst), "--sort", "doubling", "--sentinel", "#"]) == 0
    steps = json.loads(dst.read_text(encoding="utf-8"))
    assert steps[1]["metadata"]["sentinel"] == "#"
    assert main([str(dst), "-d"]) == 0
    assert (tmp_path / "rec.out").read_text(encoding="utf-8") == "mississippi"


def test_sentinel_collision_reports_error(tmp_path, capsys):
    src = tmp_path / "bad.txt"
    src.write_text("a" + SENTINEL + "b", encoding="utf-8")
    assert main([str(src)]) == 1
    assert "sentinel" in capsys.readouterr().err


def test_malformed_record_reports_error(tmp_path, capsys):
    rec = tmp_path / "rec.json"
    rec.write_text("[]", encoding="utf-8")
    assert main([str(rec), "-d"]) == 1
    assert "error" in capsys.readouterr().err


def test_missing_file(tmp_path):
    assert main([str(tmp_path / "nope.txt")]) == 1


def test_line_endings_survive_round_trip(tmp_path):
    src = tmp_path / "crlf.txt"
    src.write_bytes(b"line one\r\nline two\r\nlone\rcr\n")
    rec = tmp_path / "crlf.json"
    out = tmp_path / "crlf.out.txt"
    assert main([str(src), "-o", str(rec)]) == 0
    assert main([str(rec), "-d", "-o", str(out)]) == 0
    assert out.read_bytes() == b"line one\r\nline two\r\nlone\rcr\n"


def test_mistyped_record_metadata_exits_with_error(tmp_path, capsys):
    src = tmp_path / "in.txt"
    src.write_text("banana", encoding="utf-8")
    rec = tmp_path / "rec.json"
    assert main([str(src), "-o", str(rec)]) == 0
    raw = json.loads(rec.read_text(encoding="utf-8"))
    raw[1]["metadata"]["sentinel"] = None
    rec.write_text(json.dumps(raw), encoding="utf-8")
    assert main([str(rec), "-d"]) == 1
    assert "sentinel" in capsys.readouterr().err
