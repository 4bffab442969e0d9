import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

import symsub
from benchmark_compare import generate_corpus, run_benchmarks


def test_cli_compress_then_decompress(tmp_path, capsys):
    src = tmp_path / "note.txt"
    text = "line one\r\nline one\r\nline one\r\n"
    src.write_bytes(text.encode("utf-8"))

    assert symsub.main(["-i", str(src)]) == 0
    packed = tmp_path / "note.txt.sym"
    assert packed.exists()

    out = tmp_path / "restored.txt"
    assert symsub.main(["-i", str(packed), "-d", "-o", str(out)]) == 0
    # newlines survive untranslated
    assert out.read_bytes() == text.encode("utf-8")
    assert "Decompressed" in capsys.readouterr().out


def test_cli_dump(tmp_path, capsys):
    packed = tmp_path / "abc.sym"
    packed.write_text(symsub.compress("abc" * 6), encoding="utf-8")
    assert symsub.main(["-i", str(packed), "--dump"]) == 0
    assert "'|' = 'abc'" in capsys.readouterr().out


def test_cli_reports_exhaustion(tmp_path, capsys):
    src = tmp_path / "in.txt"
    src.write_text("abab", encoding="utf-8")
    assert symsub.main(["-i", str(src), "--alphabet", "ab"]) == 1
    assert "symsub:" in capsys.readouterr().err


def test_cli_reports_malformed_stream(tmp_path, capsys):
    bad = tmp_path / "bad.sym"
    bad.write_text("}~~|=ab", encoding="utf-8")
    assert symsub.main(["-i", str(bad), "-d"]) == 1
    assert "symsub:" in capsys.readouterr().err


def test_generate_corpus_is_deterministic():
    a = generate_corpus(25, seed=3)
    b = generate_corpus(25, seed=3)
    assert a == b
    assert len(a.split()) == 25
    assert generate_corpus(0) == ""


def test_benchmark_smoke(tmp_path):
    data_sets = {
        "runs": "x" * 40 + "yz" * 10,
        "phrase": "pack it up " * 5,
    }
    plot = tmp_path / "plot.png"
    df, path = run_benchmarks(data_sets, plot_path=str(plot))
    assert path == str(plot)
    assert plot.exists()
    assert set(df["algorithm"]) == {"symsub", "zlib", "bz2", "lzma"}
    assert len(df) == 8
    assert df["valid"].all()
    symsub_rows = df[df["algorithm"] == "symsub"]
    assert (symsub_rows["ratio"] < 1.0).all()
