import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class TargetMetric:
    target_id: str
    url: str
    start_time: float
    end_time: Optional[float] = None
    success: bool = False
    skipped: bool = False
    states: list[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class HarvestMetrics:
    start_time: float = field(default_factory=time.time)
    targets: dict[str, TargetMetric] = field(default_factory=dict)

    def start_target(self, target_id: str, url: str) -> None:
        self.targets[target_id] = TargetMetric(
            target_id=target_id,
            url=url,
            start_time=time.time()
        )

    def end_target(
        self,
        target_id: str,
        success: bool,
        states: Optional[list[str]] = None,
        error: Optional[str] = None,
        skipped: bool = False
    ) -> None:
        if target_id in self.targets:
            self.targets[target_id].end_time = time.time()
            self.targets[target_id].success = success
            self.targets[target_id].skipped = skipped
            self.targets[target_id].states = list(states or [])
            self.targets[target_id].error = error

    def get_summary(self) -> dict:
        archived = sum(1 for t in self.targets.values() if t.success)
        skipped = sum(1 for t in self.targets.values() if t.skipped)
        challenged = sum(1 for t in self.targets.values() if t.states)

        return {
            "total_targets": len(self.targets),
            "archived": archived,
            "skipped": skipped,
            "failed": len(self.targets) - archived - skipped,
            "challenges_seen": challenged,
            "total_time_seconds": time.time() - self.start_time,
            "per_target": [
                {
                    "id": t.target_id,
                    "url": t.url,
                    "time_seconds": round((t.end_time or time.time()) - t.start_time, 2),
                    "success": t.success,
                    "skipped": t.skipped,
                    "states": t.states,
                    "error": t.error
                }
                for t in self.targets.values()
            ]
        }

    def print_summary(self) -> None:
        s = self.get_summary()
        print(f"\n{'='*50}")
        print(f"PAGE HARVEST - RESULTS")
        print(f"{'='*50}")
        print(f"Archived: {s['archived']}/{s['total_targets']} (skipped: {s['skipped']}, failed: {s['failed']})")
        print(f"Challenges seen: {s['challenges_seen']}")
        print(f"Total time: {s['total_time_seconds']:.1f}s")
        print(f"{'='*50}\n")
