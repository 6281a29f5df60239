"""Local SQLite store for synchronized CHPP data.

This module provides:
- SyncStore: SQLite persistence gateway used by the sync engine
- SyncGeneration: one sync run ("download"), the unit of visibility
- DownloadEntry: per-endpoint fetch log of a generation

Architecture:
    Every row is keyed by its natural id plus the generation (download) id,
    and written with an upsert, so re-running a stage is idempotent.
    Readers only look at the latest generation whose status is completed;
    an abandoned sync leaves its generation in_progress and is ignored.

    Writes follow foreign-key order: languages and currencies, then
    countries and leagues, then users and teams, then players.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, fields
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from chppsync.client.models import (
    Language,
    LastMatch,
    Player,
    PlayerSkills,
    Reference,
    Team,
    User,
    WorldDetails,
)
from chppsync.core.types import EntryStatus, GenerationStatus

logger = logging.getLogger(__name__)

# Player fields stored in their own columns rather than as plain values
_NESTED_PLAYER_FIELDS = ("player_id", "skills", "last_match", "mother_club")
_BOOL_PLAYER_FIELDS = ("mother_club_bonus", "is_abroad", "transfer_listed")
_PLAIN_PLAYER_FIELDS = tuple(
    f.name for f in fields(Player) if f.name not in _NESTED_PLAYER_FIELDS
)
_SKILL_FIELDS = tuple(f.name for f in fields(PlayerSkills))
_LAST_MATCH_FIELDS = tuple(f.name for f in fields(LastMatch))


class StorageError(Exception):
    """Persistence-layer failure."""


@dataclass
class SyncGeneration:
    """A sync run.

    Attributes:
        id: Monotonically increasing generation id.
        timestamp: ISO-8601 UTC start time.
        status: in_progress until every required stage succeeded.
    """

    id: int
    timestamp: str
    status: GenerationStatus

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> SyncGeneration:
        return cls(
            id=row["id"],
            timestamp=row["timestamp"],
            status=GenerationStatus(row["status"]),
        )


@dataclass
class DownloadEntry:
    """Outcome of one endpoint call within a generation."""

    id: int
    download_id: int
    endpoint: str
    version: str
    status: EntryStatus
    fetched_date: str
    error_message: str | None
    retry_count: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> DownloadEntry:
        return cls(
            id=row["id"],
            download_id=row["download_id"],
            endpoint=row["endpoint"],
            version=row["version"],
            status=EntryStatus(row["status"]),
            fetched_date=row["fetched_date"],
            error_message=row["error_message"],
            retry_count=row["retry_count"],
        )


@dataclass
class TeamSummary:
    """A stored team, as listed by get_teams()."""

    team_id: int
    team_name: str
    user_id: int
    is_primary_club: bool


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _player_row(player: Player, team_id: int, download_id: int) -> dict[str, Any]:
    """Flatten a player into a players table row."""
    row: dict[str, Any] = {
        "id": player.player_id,
        "download_id": download_id,
        "team_id": team_id,
    }
    for name in _PLAIN_PLAYER_FIELDS:
        row[name] = getattr(player, name)
    for name in _SKILL_FIELDS:
        row[f"{name}_skill"] = getattr(player.skills, name) if player.skills else None
    for name in _LAST_MATCH_FIELDS:
        row[f"last_match_{name}"] = (
            getattr(player.last_match, name) if player.last_match else None
        )
    row["mother_club_id"] = player.mother_club.id if player.mother_club else None
    row["mother_club_name"] = player.mother_club.name if player.mother_club else None
    return row


def _player_from_row(row: sqlite3.Row) -> Player:
    """Rebuild a player from a players table row."""
    values: dict[str, Any] = {name: row[name] for name in _PLAIN_PLAYER_FIELDS}
    for name in _BOOL_PLAYER_FIELDS:
        values[name] = bool(values[name])

    skills = None
    if row["stamina_skill"] is not None:
        skills = PlayerSkills(**{name: row[f"{name}_skill"] for name in _SKILL_FIELDS})

    last_match = None
    if row["last_match_match_id"] is not None:
        last_match = LastMatch(
            **{name: row[f"last_match_{name}"] for name in _LAST_MATCH_FIELDS}
        )

    mother_club = None
    if row["mother_club_id"] is not None:
        mother_club = Reference(id=row["mother_club_id"], name=row["mother_club_name"])

    return Player(
        player_id=row["id"],
        skills=skills,
        last_match=last_match,
        mother_club=mother_club,
        **values,
    )


class SyncStore:
    """SQLite persistence gateway for synchronized data.

    Thread-safe: the sync engine dispatches writes to a worker thread, so
    every statement runs under a lock.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
        """
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            self._db_path,
            check_same_thread=False,
            isolation_level=None,  # Autocommit; stages open explicit transactions
        )
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS downloads (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                status TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS download_entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                endpoint TEXT NOT NULL,
                version TEXT NOT NULL,
                status TEXT NOT NULL,
                fetched_date TEXT NOT NULL,
                error_message TEXT,
                retry_count INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS languages (
                id INTEGER NOT NULL,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                name TEXT NOT NULL,
                PRIMARY KEY (id, download_id)
            );

            CREATE TABLE IF NOT EXISTS currencies (
                id INTEGER NOT NULL,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                name TEXT NOT NULL,
                rate REAL,
                symbol TEXT,
                PRIMARY KEY (id, download_id)
            );

            CREATE TABLE IF NOT EXISTS countries (
                id INTEGER NOT NULL,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                name TEXT NOT NULL,
                currency_id INTEGER,
                country_code TEXT,
                date_format TEXT,
                time_format TEXT,
                PRIMARY KEY (id, download_id),
                FOREIGN KEY (currency_id, download_id)
                    REFERENCES currencies(id, download_id)
            );

            CREATE TABLE IF NOT EXISTS leagues (
                id INTEGER NOT NULL,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                name TEXT NOT NULL,
                country_id INTEGER,
                short_name TEXT,
                continent TEXT,
                zone_name TEXT,
                english_name TEXT,
                language_id INTEGER,
                season INTEGER,
                season_offset INTEGER,
                match_round INTEGER,
                national_team_id INTEGER,
                u20_team_id INTEGER,
                active_teams INTEGER,
                active_users INTEGER,
                number_of_levels INTEGER,
                PRIMARY KEY (id, download_id),
                FOREIGN KEY (country_id, download_id)
                    REFERENCES countries(id, download_id),
                FOREIGN KEY (language_id, download_id)
                    REFERENCES languages(id, download_id)
            );

            CREATE TABLE IF NOT EXISTS regions (
                id INTEGER NOT NULL,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                name TEXT NOT NULL,
                PRIMARY KEY (id, download_id)
            );

            CREATE TABLE IF NOT EXISTS users (
                id INTEGER NOT NULL,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                name TEXT NOT NULL,
                login_name TEXT NOT NULL,
                supporter_tier TEXT,
                signup_date TEXT,
                activation_date TEXT,
                last_login_date TEXT,
                has_manager_license INTEGER NOT NULL DEFAULT 0,
                language_id INTEGER,
                PRIMARY KEY (id, download_id),
                FOREIGN KEY (language_id, download_id)
                    REFERENCES languages(id, download_id)
            );

            CREATE TABLE IF NOT EXISTS teams (
                id INTEGER NOT NULL,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                user_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                short_name TEXT,
                is_primary_club INTEGER NOT NULL DEFAULT 0,
                founded_date TEXT,
                is_deactivated INTEGER,
                arena_id INTEGER,
                arena_name TEXT,
                league_id INTEGER,
                country_id INTEGER,
                region_id INTEGER,
                league_level_unit_id INTEGER,
                league_level_unit_name TEXT,
                home_page TEXT,
                logo_url TEXT,
                team_rank INTEGER,
                number_of_victories INTEGER,
                number_of_undefeated INTEGER,
                youth_team_id INTEGER,
                PRIMARY KEY (id, download_id),
                FOREIGN KEY (user_id, download_id) REFERENCES users(id, download_id),
                FOREIGN KEY (league_id, download_id) REFERENCES leagues(id, download_id),
                FOREIGN KEY (country_id, download_id) REFERENCES countries(id, download_id),
                FOREIGN KEY (region_id, download_id) REFERENCES regions(id, download_id)
            );

            CREATE TABLE IF NOT EXISTS players (
                id INTEGER NOT NULL,
                download_id INTEGER NOT NULL REFERENCES downloads(id),
                team_id INTEGER NOT NULL,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                age INTEGER NOT NULL,
                tsi INTEGER NOT NULL,
                player_form INTEGER NOT NULL,
                experience INTEGER NOT NULL,
                loyalty INTEGER NOT NULL,
                leadership INTEGER NOT NULL,
                salary INTEGER NOT NULL,
                agreeability INTEGER NOT NULL,
                aggressiveness INTEGER NOT NULL,
                honesty INTEGER NOT NULL,
                mother_club_bonus INTEGER NOT NULL,
                is_abroad INTEGER NOT NULL,
                transfer_listed INTEGER NOT NULL,
                nick_name TEXT,
                player_number INTEGER,
                age_days INTEGER,
                statement TEXT,
                reference_player_id INTEGER,
                league_goals INTEGER,
                cup_goals INTEGER,
                friendlies_goals INTEGER,
                career_goals INTEGER,
                career_hattricks INTEGER,
                career_assists INTEGER,
                speciality INTEGER,
                national_team_id INTEGER,
                country_id INTEGER,
                caps INTEGER,
                caps_u20 INTEGER,
                cards INTEGER,
                injury_level INTEGER,
                sticker TEXT,
                flag TEXT,
                arrival_date TEXT,
                player_category_id INTEGER,
                native_country_id INTEGER,
                native_league_id INTEGER,
                native_league_name TEXT,
                matches_current_team INTEGER,
                goals_current_team INTEGER,
                assists_current_team INTEGER,
                gender_id INTEGER,
                mother_club_id INTEGER,
                mother_club_name TEXT,
                stamina_skill INTEGER,
                keeper_skill INTEGER,
                playmaker_skill INTEGER,
                scorer_skill INTEGER,
                passing_skill INTEGER,
                winger_skill INTEGER,
                defender_skill INTEGER,
                set_pieces_skill INTEGER,
                last_match_date TEXT,
                last_match_match_id INTEGER,
                last_match_position_code INTEGER,
                last_match_played_minutes INTEGER,
                last_match_rating REAL,
                last_match_rating_end_of_match REAL,
                PRIMARY KEY (id, download_id),
                FOREIGN KEY (team_id, download_id) REFERENCES teams(id, download_id)
            );

            CREATE INDEX IF NOT EXISTS idx_players_team
                ON players(team_id, download_id);
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements atomically, converting sqlite errors to StorageError."""
        with self._lock:
            try:
                self._conn.execute("BEGIN")
                try:
                    yield self._conn
                except BaseException:
                    self._conn.execute("ROLLBACK")
                    raise
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                raise StorageError(f"Database error: {e}") from e

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Database error: {e}") from e

    @staticmethod
    def _upsert(
        conn: sqlite3.Connection,
        table: str,
        row: dict[str, Any],
        key: tuple[str, ...] = ("id", "download_id"),
    ) -> None:
        """Insert or update a row keyed by its natural key.

        Existing non-null values are kept when the new value is null, so a
        partial reference (e.g. a team's league name) never erases richer
        data written by another stage.
        """
        columns = list(row)
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(
            f"{col} = COALESCE(excluded.{col}, {table}.{col})"
            for col in columns
            if col not in key
        )
        sql = (
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT ({', '.join(key)}) DO "
            + (f"UPDATE SET {updates}" if updates else "NOTHING")
        )
        conn.execute(sql, tuple(row.values()))

    # === Generations ===

    def begin_generation(self) -> SyncGeneration:
        """Create a new generation with status in_progress."""
        timestamp = _now()
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO downloads (timestamp, status) VALUES (?, ?)",
                (timestamp, GenerationStatus.IN_PROGRESS.value),
            )
            generation_id = cursor.lastrowid
        if generation_id is None:
            raise StorageError("Failed to create download record")
        logger.debug(f"Created download {generation_id}")
        return SyncGeneration(generation_id, timestamp, GenerationStatus.IN_PROGRESS)

    def complete_generation(self, generation_id: int) -> None:
        """Mark a generation completed, making its data visible to readers."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE downloads SET status = ? WHERE id = ?",
                (GenerationStatus.COMPLETED.value, generation_id),
            )
            if cursor.rowcount == 0:
                raise StorageError(f"Unknown download {generation_id}")

    def get_generation(self, generation_id: int) -> SyncGeneration | None:
        """Get a generation by id."""
        rows = self._query("SELECT * FROM downloads WHERE id = ?", (generation_id,))
        return SyncGeneration.from_row(rows[0]) if rows else None

    def get_latest_download_id(self) -> int | None:
        """Id of the latest completed generation, or None if there is none."""
        rows = self._query(
            "SELECT id FROM downloads WHERE status = ? ORDER BY id DESC LIMIT 1",
            (GenerationStatus.COMPLETED.value,),
        )
        return rows[0]["id"] if rows else None

    # === Download entries ===

    def record_entry(
        self,
        download_id: int,
        endpoint: str,
        version: str,
        status: EntryStatus,
        error_message: str | None = None,
        retry_count: int = 0,
    ) -> None:
        """Log the outcome of one endpoint call."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO download_entries
                    (download_id, endpoint, version, status, fetched_date,
                     error_message, retry_count)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    download_id,
                    endpoint,
                    version,
                    status.value,
                    _now(),
                    error_message,
                    retry_count,
                ),
            )

    def get_entries(self, download_id: int) -> list[DownloadEntry]:
        """List the endpoint log of a generation, oldest first."""
        rows = self._query(
            "SELECT * FROM download_entries WHERE download_id = ? ORDER BY id",
            (download_id,),
        )
        return [DownloadEntry.from_row(row) for row in rows]

    # === Reference data ===

    def _save_language(
        self, conn: sqlite3.Connection, language: Language, download_id: int
    ) -> None:
        self._upsert(
            conn,
            "languages",
            {
                "id": language.language_id,
                "download_id": download_id,
                "name": language.language_name,
            },
        )

    def _save_reference(
        self,
        conn: sqlite3.Connection,
        table: str,
        ref: Reference | None,
        download_id: int,
    ) -> None:
        if ref is not None:
            self._upsert(
                conn, table, {"id": ref.id, "download_id": download_id, "name": ref.name}
            )

    def save_world_details(self, world: WorldDetails, download_id: int) -> None:
        """Persist leagues with their countries, currencies and languages.

        World details carry no currency id; each country has exactly one
        currency, so the country id doubles as the currency id.
        """
        with self._transaction() as conn:
            for league in world.leagues:
                if league.language_id is not None and league.language_name:
                    self._save_language(
                        conn,
                        Language(league.language_id, league.language_name),
                        download_id,
                    )

                country = league.country
                currency_id = None
                if country.country_id is not None and country.currency_name:
                    currency_id = country.country_id
                    self._upsert(
                        conn,
                        "currencies",
                        {
                            "id": currency_id,
                            "download_id": download_id,
                            "name": country.currency_name,
                            "rate": country.rate,
                            "symbol": country.currency_name,
                        },
                    )

                if country.country_id is not None:
                    self._upsert(
                        conn,
                        "countries",
                        {
                            "id": country.country_id,
                            "download_id": download_id,
                            "name": country.country_name or "",
                            "currency_id": currency_id,
                            "country_code": country.country_code,
                            "date_format": country.date_format,
                            "time_format": country.time_format,
                        },
                    )

                language_id = (
                    league.language_id
                    if league.language_id is not None and league.language_name
                    else None
                )
                self._upsert(
                    conn,
                    "leagues",
                    {
                        "id": league.league_id,
                        "download_id": download_id,
                        "name": league.league_name,
                        "country_id": country.country_id,
                        "short_name": league.short_name,
                        "continent": league.continent,
                        "zone_name": league.zone_name,
                        "english_name": league.english_name,
                        "language_id": language_id,
                        "season": league.season,
                        "season_offset": league.season_offset,
                        "match_round": league.match_round,
                        "national_team_id": league.national_team_id,
                        "u20_team_id": league.u20_team_id,
                        "active_teams": league.active_teams,
                        "active_users": league.active_users,
                        "number_of_levels": league.number_of_levels,
                    },
                )
        logger.info(f"Saved world details: {len(world.leagues)} leagues")

    # === User and teams ===

    def save_team(self, team: Team, user: User, download_id: int) -> None:
        """Persist a team together with its owner and referenced entities."""
        with self._transaction() as conn:
            if user.language is not None:
                self._save_language(conn, user.language, download_id)
            self._save_reference(conn, "countries", team.country, download_id)
            self._save_reference(conn, "leagues", team.league, download_id)
            self._save_reference(conn, "regions", team.region, download_id)

            self._upsert(
                conn,
                "users",
                {
                    "id": user.user_id,
                    "download_id": download_id,
                    "name": user.name,
                    "login_name": user.login_name,
                    "supporter_tier": user.supporter_tier,
                    "signup_date": user.signup_date,
                    "activation_date": user.activation_date,
                    "last_login_date": user.last_login_date,
                    "has_manager_license": int(user.has_manager_license),
                    "language_id": user.language.language_id if user.language else None,
                },
            )

            self._upsert(
                conn,
                "teams",
                {
                    "id": team.team_id,
                    "download_id": download_id,
                    "user_id": user.user_id,
                    "name": team.team_name,
                    "short_name": team.short_team_name,
                    "is_primary_club": int(bool(team.is_primary_club)),
                    "founded_date": team.founded_date,
                    "is_deactivated": (
                        int(team.is_deactivated) if team.is_deactivated is not None else None
                    ),
                    "arena_id": team.arena.id if team.arena else None,
                    "arena_name": team.arena.name if team.arena else None,
                    "league_id": team.league.id if team.league else None,
                    "country_id": team.country.id if team.country else None,
                    "region_id": team.region.id if team.region else None,
                    "league_level_unit_id": (
                        team.league_level_unit.id if team.league_level_unit else None
                    ),
                    "league_level_unit_name": (
                        team.league_level_unit.name if team.league_level_unit else None
                    ),
                    "home_page": team.home_page,
                    "logo_url": team.logo_url,
                    "team_rank": team.team_rank,
                    "number_of_victories": team.number_of_victories,
                    "number_of_undefeated": team.number_of_undefeated,
                    "youth_team_id": team.youth_team_id,
                },
            )
        logger.info(f"Saved team: {team.team_name} ({team.team_id})")

    def get_teams(self, download_id: int | None = None) -> list[TeamSummary]:
        """List teams of a generation (default: latest completed)."""
        if download_id is None:
            download_id = self.get_latest_download_id()
            if download_id is None:
                return []
        rows = self._query(
            "SELECT id, name, user_id, is_primary_club FROM teams "
            "WHERE download_id = ? ORDER BY id",
            (download_id,),
        )
        return [
            TeamSummary(
                team_id=row["id"],
                team_name=row["name"],
                user_id=row["user_id"],
                is_primary_club=bool(row["is_primary_club"]),
            )
            for row in rows
        ]

    # === Players ===

    def save_players(self, players: list[Player], team_id: int, download_id: int) -> None:
        """Persist merged players of a team."""
        with self._transaction() as conn:
            for player in players:
                row = _player_row(player, team_id, download_id)
                for name in _BOOL_PLAYER_FIELDS:
                    row[name] = int(row[name])
                self._upsert(conn, "players", row)
        logger.info(f"Saved {len(players)} players for team {team_id}")

    def get_players(self, team_id: int, download_id: int | None = None) -> list[Player]:
        """Players of a team (default: latest completed generation)."""
        if download_id is None:
            download_id = self.get_latest_download_id()
            if download_id is None:
                return []
        rows = self._query(
            "SELECT * FROM players WHERE team_id = ? AND download_id = ? ORDER BY id",
            (team_id, download_id),
        )
        return [_player_from_row(row) for row in rows]
