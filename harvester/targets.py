import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)


class HarvestTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    url: str

    @field_validator("id", "url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


def parse_csv_lines(lines: list[str]) -> list[HarvestTarget]:
    """``id,url`` rows after a header; the url is everything after the first comma."""
    targets = []
    for line in lines[1:]:
        if not line.strip():
            continue
        target_id, sep, url = line.partition(",")
        if not sep or not url.strip() or not target_id.strip():
            logger.warning("Skipping malformed input row: %r", line)
            continue
        targets.append(HarvestTarget(id=target_id, url=url))
    return targets


def parse_txt_lines(lines: list[str]) -> list[HarvestTarget]:
    urls = [line.strip() for line in lines if line.strip()]
    return [HarvestTarget(id=str(i), url=url) for i, url in enumerate(urls, start=1)]


def load_targets(path: Optional[Path] = None, base_dir: Path = Path(".")) -> list[HarvestTarget]:
    """Read targets from ``path``, or from ``urls.csv`` with ``urls.txt`` as fallback."""
    if path is not None:
        path = Path(path)
        lines = path.read_text(encoding="utf-8").splitlines()
        if path.suffix.lower() == ".csv":
            return parse_csv_lines(lines)
        return parse_txt_lines(lines)

    csv_path = Path(base_dir) / "urls.csv"
    if csv_path.exists():
        return parse_csv_lines(csv_path.read_text(encoding="utf-8").splitlines())
    return parse_txt_lines((Path(base_dir) / "urls.txt").read_text(encoding="utf-8").splitlines())
