"""History analytics and export for the Game Stats Tracker."""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..errors import InvalidConfiguration
from ..models import STAT_NAMES, GameRecord, GameResult
from ..utils import APP_TITLE, RECORD_VERSION, now_iso, sanitize_input
from ..utils.constants import BACKUP_VERSION
from .sync_engine import SyncEngine, SyncResult

logger = logging.getLogger(__name__)

NOT_SET = "Not set"

# (column header, value for one record); the first six columns are
# overwritten by the summary row
CSV_COLUMNS: List[Tuple[str, Callable[[GameRecord], Any]]] = [
    ("Date", lambda g: sanitize_input(g.date) or NOT_SET),
    ("Player Name", lambda g: sanitize_input(g.player_name) or NOT_SET),
    ("Opponent", lambda g: sanitize_input(g.opponent) or NOT_SET),
    ("Result", lambda g: g.game_result.value),
    ("Final Score (Us-Them)", lambda g: f"{g.our_goals}-{g.their_goals}"),
    ("Goals Scored (Team)", lambda g: g.our_goals),
    ("Goals Against (Team)", lambda g: g.their_goals),
    ("Personal Goals Left Foot", lambda g: g.stats["goalsLeft"]),
    ("Personal Goals Right Foot", lambda g: g.stats["goalsRight"]),
    ("Total Personal Goals", lambda g: g.derived()["totalGoals"]),
    ("Shots Left Foot", lambda g: g.stats["shotsLeft"]),
    ("Shots Right Foot", lambda g: g.stats["shotsRight"]),
    ("Total Shots", lambda g: g.derived()["totalShots"]),
    ("Goal Conversion Rate", lambda g: g.derived()["goalConversionRate"]),
    ("Assists", lambda g: g.stats["assists"]),
    ("Pass Completions", lambda g: g.stats["passCompletions"]),
    ("Corners Taken", lambda g: g.stats["cornersTaken"]),
    ("Corner Conversions", lambda g: g.stats["cornerConversions"]),
    ("Corner Conversion Rate", lambda g: g.derived()["cornerConversionRate"]),
    ("Offensive 1v1 Attempts", lambda g: g.stats["offensive1v1Attempts"]),
    ("Offensive 1v1 Won", lambda g: g.stats["offensive1v1Won"]),
    ("Offensive 1v1 Success Rate", lambda g: g.derived()["offensive1v1Rate"]),
    ("Defensive 1v1 Attempts", lambda g: g.stats["defensive1v1Attempts"]),
    ("Defensive 1v1 Won", lambda g: g.stats["defensive1v1Won"]),
    ("Defensive 1v1 Success Rate", lambda g: g.derived()["defensive1v1Rate"]),
    ("Free Kicks Taken", lambda g: g.stats["freeKicksTaken"]),
    ("Free Kicks Made", lambda g: g.stats["freeKicksMade"]),
    ("Free Kick Conversion Rate", lambda g: g.derived()["freeKickConversionRate"]),
    ("Defensive Tackles", lambda g: g.stats["defensiveTackles"]),
    ("Defensive Failures", lambda g: g.stats["defensiveFailures"]),
    ("Defensive Tackle Success Rate", lambda g: g.derived()["defensiveTackleRate"]),
    ("Defensive Disruption", lambda g: g.stats["defensiveDisruption"]),
    ("Defensive Distribution", lambda g: g.stats["defensiveDistribution"]),
    ("Defensive Distribution Rate", lambda g: g.derived()["defensiveDistributionRate"]),
    ("Fouls", lambda g: g.stats["fouls"]),
    ("Cards (Red/Yellow)", lambda g: g.stats["cards"]),
    ("GK Shots Saved", lambda g: g.stats["gkShotsSaved"]),
    ("GK Goals Against", lambda g: g.stats["gkGoalsAgainst"]),
    ("Player Minutes Played", lambda g: g.to_json()["playerMinutesPlayed"]),
    ("Halftime Duration", lambda g: f"{g.halftime_minutes} min"),
    ("Halftime Completed", lambda g: "Yes" if g.halftime_complete else "No"),
    ("Goal Timeline", lambda g: sanitize_input(g.goal_history.merged().describe())),
    ("Game Notes", lambda g: sanitize_input(g.game_notes) or "No notes"),
    ("Sync Status", lambda g: "Local Only" if g.is_local_only else "Synced"),
]

CSV_HEADERS = ["Game #"] + [header for header, _ in CSV_COLUMNS] + ["User PIN"]

# Columns summed on the summary row, keyed by the counter they total
_SUMMED_STAT_COLUMNS = {
    "Personal Goals Left Foot": "goalsLeft",
    "Personal Goals Right Foot": "goalsRight",
    "Shots Left Foot": "shotsLeft",
    "Shots Right Foot": "shotsRight",
    "Assists": "assists",
    "Pass Completions": "passCompletions",
    "Corners Taken": "cornersTaken",
    "Corner Conversions": "cornerConversions",
    "Offensive 1v1 Attempts": "offensive1v1Attempts",
    "Offensive 1v1 Won": "offensive1v1Won",
    "Defensive 1v1 Attempts": "defensive1v1Attempts",
    "Defensive 1v1 Won": "defensive1v1Won",
    "Free Kicks Taken": "freeKicksTaken",
    "Free Kicks Made": "freeKicksMade",
    "Defensive Tackles": "defensiveTackles",
    "Defensive Failures": "defensiveFailures",
    "Defensive Disruption": "defensiveDisruption",
    "Defensive Distribution": "defensiveDistribution",
    "Fouls": "fouls",
    "Cards (Red/Yellow)": "cards",
    "GK Shots Saved": "gkShotsSaved",
    "GK Goals Against": "gkGoalsAgainst",
}


@dataclass
class HistorySummary:
    """Simple aggregates over a list of games."""
    total_games: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0
    local_only: int = 0
    goals_for: int = 0
    goals_against: int = 0
    stat_totals: Dict[str, int] = field(default_factory=dict)

    @property
    def win_rate(self) -> str:
        if self.total_games == 0:
            return "0%"
        return f"{self.wins / self.total_games * 100:.1f}%"

    @property
    def record_text(self) -> str:
        return f"{self.wins}W-{self.losses}L-{self.ties}T"

    def to_json(self) -> Dict[str, Any]:
        return {
            "totalGames": self.total_games,
            "wins": self.wins,
            "losses": self.losses,
            "ties": self.ties,
            "record": self.record_text,
            "winRate": self.win_rate,
            "localOnly": self.local_only,
            "goalsFor": self.goals_for,
            "goalsAgainst": self.goals_against,
            "statTotals": dict(self.stat_totals),
        }


def summarize(records: List[GameRecord]) -> HistorySummary:
    results = [record.game_result for record in records]
    totals = {name: sum(record.stats[name] for record in records) for name in STAT_NAMES}
    return HistorySummary(
        total_games=len(records),
        wins=results.count(GameResult.WIN),
        losses=results.count(GameResult.LOSS),
        ties=results.count(GameResult.TIE),
        local_only=sum(1 for record in records if record.is_local_only),
        goals_for=sum(record.our_goals for record in records),
        goals_against=sum(record.their_goals for record in records),
        stat_totals=totals,
    )


class HistoryExporter:
    """Builds CSV and JSON backup exports of the game history."""

    def export_to_csv(
        self,
        records: List[GameRecord],
        scope: str,
        last_sync_ts: Optional[float] = None,
        online: bool = True,
    ) -> str:
        """
        Export records as CSV: a summary row, then one row per game (newest first).

        Returns an empty string when there are no records.
        """
        if not records:
            return ""

        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=CSV_HEADERS, lineterminator="\n")
        writer.writeheader()
        writer.writerow(self._summary_row(records, scope, last_sync_ts, online))
        for index, record in enumerate(records):
            row: Dict[str, Any] = {"Game #": len(records) - index}
            for header, value in CSV_COLUMNS:
                row[header] = value(record)
            row["User PIN"] = record.user_pin or scope
            writer.writerow(row)
        return output.getvalue()

    def _summary_row(
        self, records: List[GameRecord], scope: str, last_sync_ts: Optional[float], online: bool
    ) -> Dict[str, Any]:
        summary = summarize(records)
        last_sync = (
            datetime.fromtimestamp(last_sync_ts).strftime("%Y-%m-%d %H:%M:%S") if last_sync_ts else "Never"
        )
        totals = summary.stat_totals
        row: Dict[str, Any] = {header: "" for header in CSV_HEADERS}
        row.update({
            "Game #": "SUMMARY",
            "Date": f"{summary.total_games} Total Games",
            "Player Name": f"Last Sync: {last_sync}",
            "Opponent": f"Record: {summary.record_text}",
            "Result": f"Win Rate: {summary.win_rate}",
            "Final Score (Us-Them)": f"Local Only: {summary.local_only} games",
            "Goals Scored (Team)": summary.goals_for,
            "Goals Against (Team)": summary.goals_against,
            "Total Personal Goals": totals["goalsLeft"] + totals["goalsRight"],
            "Total Shots": totals["shotsLeft"] + totals["shotsRight"],
            "Sync Status": "Online" if online else "Offline",
            "User PIN": scope,
        })
        for header, stat in _SUMMED_STAT_COLUMNS.items():
            row[header] = totals[stat]
        return row

    def export_backup(self, records: List[GameRecord], scope: str) -> Dict[str, Any]:
        """Full JSON backup of the history."""
        return {
            "version": BACKUP_VERSION,
            "exportDate": now_iso(),
            "metadata": {
                "application": APP_TITLE,
                "recordVersion": RECORD_VERSION,
                "userPin": scope,
                "totalGames": len(records),
                "localOnlyGames": sum(1 for record in records if record.is_local_only),
            },
            "records": [record.to_json() for record in records],
        }

    def parse_backup(self, data: Mapping[str, Any]) -> List[GameRecord]:
        """
        Read the records out of a backup document.

        Raises:
            InvalidConfiguration: If the document is not a backup
        """
        if not isinstance(data, Mapping) or "version" not in data:
            raise InvalidConfiguration("Not a game history backup")
        documents = data.get("records")
        if not isinstance(documents, list):
            raise InvalidConfiguration("Backup has no record list")
        return [GameRecord.from_json(doc) for doc in documents if isinstance(doc, Mapping)]


class AnalyticsService:
    """
    Read-side views over the sync engine's committed records.

    Never writes the record list itself except through
    :meth:`SyncEngine.bulk_save` when restoring a backup.
    """

    def __init__(self, sync_engine: SyncEngine, exporter: Optional[HistoryExporter] = None):
        self.sync_engine = sync_engine
        self.exporter = exporter or HistoryExporter()

    def records(self, opponent: Optional[str] = None) -> List[GameRecord]:
        records = self.sync_engine.records()
        if opponent:
            return self.filter_by_opponent(records, opponent)
        return records

    @staticmethod
    def filter_by_opponent(records: List[GameRecord], opponent: str) -> List[GameRecord]:
        """Case-insensitive substring match on the opponent name."""
        needle = opponent.strip().lower()
        return [record for record in records if needle in record.opponent.lower()]

    def unique_opponents(self) -> List[str]:
        return sorted({r.opponent for r in self.sync_engine.records() if r.opponent}, key=str.lower)

    def unique_player_names(self) -> List[str]:
        return sorted({r.player_name for r in self.sync_engine.records() if r.player_name}, key=str.lower)

    def summary(self, opponent: Optional[str] = None) -> HistorySummary:
        return summarize(self.records(opponent))

    def export_csv(self, opponent: Optional[str] = None) -> str:
        engine = self.sync_engine
        return self.exporter.export_to_csv(
            self.records(opponent), engine.scope, engine.last_sync_ts, engine.online
        )

    def export_backup(self) -> Dict[str, Any]:
        return self.exporter.export_backup(self.sync_engine.records(), self.sync_engine.scope)

    def restore_backup(self, data: Mapping[str, Any]) -> SyncResult:
        """
        Re-save every record of a backup.

        Games already in the history (same client id) are not duplicated.
        """
        records = self.exporter.parse_backup(data)
        logger.info("Restoring %d games from backup", len(records))
        return self.sync_engine.bulk_save(records)
