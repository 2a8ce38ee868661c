import pytest
from pydantic import ValidationError
from targets import HarvestTarget, load_targets, parse_csv_lines, parse_txt_lines


def test_csv_keeps_commas_in_url():
    targets = parse_csv_lines(["id,url", "1,https://example.com/search?q=a,b", "2, https://b.com/ "])
    assert [t.id for t in targets] == ["1", "2"]
    assert targets[0].url == "https://example.com/search?q=a,b"
    assert targets[1].url == "https://b.com/"


def test_csv_skips_blank_and_malformed_rows():
    targets = parse_csv_lines(["id,url", "", "no-comma-here", "3,", "4,https://d.com/"])
    assert [t.id for t in targets] == ["4"]


def test_txt_numbers_urls_from_one():
    targets = parse_txt_lines(["https://a.com/", "", "  https://b.com/  "])
    assert [(t.id, t.url) for t in targets] == [("1", "https://a.com/"), ("2", "https://b.com/")]


def test_load_prefers_csv(tmp_path):
    (tmp_path / "urls.csv").write_text("id,url\n9,https://csv.com/\n", encoding="utf-8")
    (tmp_path / "urls.txt").write_text("https://txt.com/\n", encoding="utf-8")
    assert load_targets(base_dir=tmp_path)[0].url == "https://csv.com/"


def test_load_falls_back_to_txt(tmp_path):
    (tmp_path / "urls.txt").write_text("https://txt.com/\n", encoding="utf-8")
    assert load_targets(base_dir=tmp_path)[0].url == "https://txt.com/"


def test_load_explicit_path(tmp_path):
    path = tmp_path / "list.csv"
    path.write_text("id,url\na,https://x.com/\n", encoding="utf-8")
    assert load_targets(path)[0].id == "a"


def test_missing_input_raises(tmp_path):
    with pytest.raises(OSError):
        load_targets(base_dir=tmp_path)


def test_blank_url_rejected():
    with pytest.raises(ValidationError):
        HarvestTarget(id="1", url="   ")
