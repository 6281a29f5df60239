"""Typed records for CHPP XML responses.

This module provides:
- Dataclasses for users, teams, world reference data and players
- from_element constructors mapping ElementTree nodes to records
- parse_* helpers turning a response body into typed records

Parsers raise ValueError on malformed XML or missing required elements;
ChppClient converts these into ParseError.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

# === Element helpers ===


def _find(element: ET.Element, tag: str) -> ET.Element | None:
    return element.find(tag)


def _text(element: ET.Element, tag: str) -> str | None:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text if text else None


def _required(element: ET.Element, tag: str) -> str:
    value = _text(element, tag)
    if value is None:
        raise ValueError(f"Missing required element <{tag}> in <{element.tag}>")
    return value


def _int(element: ET.Element, tag: str) -> int:
    value = _required(element, tag)
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"<{tag}> is not an integer: {value!r}") from e


def _opt_int(element: ET.Element, tag: str) -> int | None:
    value = _text(element, tag)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _opt_float(element: ET.Element, tag: str) -> float | None:
    value = _text(element, tag)
    if value is None:
        return None
    try:
        return float(value.replace(",", "."))
    except ValueError:
        return None


def _bool(element: ET.Element, tag: str, default: bool = False) -> bool:
    value = _opt_bool(element, tag)
    return default if value is None else value


def _opt_bool(element: ET.Element, tag: str) -> bool | None:
    value = _text(element, tag)
    if value is None:
        return None
    return value.lower() in ("true", "1")


# === User and team ===


@dataclass(frozen=True)
class Language:
    """A language reference entry."""

    language_id: int
    language_name: str

    @classmethod
    def from_element(cls, element: ET.Element) -> Language:
        return cls(
            language_id=_int(element, "LanguageID"),
            language_name=_required(element, "LanguageName"),
        )


@dataclass(frozen=True)
class User:
    """The authenticated manager."""

    user_id: int
    name: str
    login_name: str
    supporter_tier: str | None = None
    signup_date: str | None = None
    activation_date: str | None = None
    last_login_date: str | None = None
    has_manager_license: bool = False
    language: Language | None = None

    @classmethod
    def from_element(cls, element: ET.Element) -> User:
        language_el = _find(element, "Language")
        return cls(
            user_id=_int(element, "UserID"),
            name=_required(element, "Name"),
            login_name=_required(element, "Loginname"),
            supporter_tier=_text(element, "SupporterTier"),
            signup_date=_text(element, "SignupDate"),
            activation_date=_text(element, "ActivationDate"),
            last_login_date=_text(element, "LastLoginDate"),
            has_manager_license=_bool(element, "HasManagerLicense"),
            language=Language.from_element(language_el) if language_el is not None else None,
        )


@dataclass(frozen=True)
class Reference:
    """An (id, name) pair nested in a team, e.g. arena, league or region."""

    id: int
    name: str

    @classmethod
    def from_element(cls, element: ET.Element, id_tag: str, name_tag: str) -> Reference:
        return cls(id=_int(element, id_tag), name=_required(element, name_tag))


def _reference(
    element: ET.Element, tag: str, id_tag: str, name_tag: str
) -> Reference | None:
    child = _find(element, tag)
    if child is None or _text(child, id_tag) is None:
        return None
    return Reference.from_element(child, id_tag, name_tag)


@dataclass(frozen=True)
class Team:
    """A team owned by the user (teamdetails) or a roster holder (players)."""

    team_id: int
    team_name: str
    short_team_name: str | None = None
    is_primary_club: bool | None = None
    founded_date: str | None = None
    is_deactivated: bool | None = None
    arena: Reference | None = None
    league: Reference | None = None
    country: Reference | None = None
    region: Reference | None = None
    league_level_unit: Reference | None = None
    home_page: str | None = None
    logo_url: str | None = None
    team_rank: int | None = None
    number_of_victories: int | None = None
    number_of_undefeated: int | None = None
    youth_team_id: int | None = None
    player_list: list[Player] | None = None

    @classmethod
    def from_element(cls, element: ET.Element) -> Team:
        players_el = _find(element, "PlayerList")
        player_list = None
        if players_el is not None:
            player_list = [Player.from_element(p) for p in players_el.findall("Player")]
        return cls(
            team_id=_int(element, "TeamID"),
            team_name=_required(element, "TeamName"),
            short_team_name=_text(element, "ShortTeamName"),
            is_primary_club=_opt_bool(element, "IsPrimaryClub"),
            founded_date=_text(element, "FoundedDate"),
            is_deactivated=_opt_bool(element, "IsDeactivated"),
            arena=_reference(element, "Arena", "ArenaID", "ArenaName"),
            league=_reference(element, "League", "LeagueID", "LeagueName"),
            country=_reference(element, "Country", "CountryID", "CountryName"),
            region=_reference(element, "Region", "RegionID", "RegionName"),
            league_level_unit=_reference(
                element, "LeagueLevelUnit", "LeagueLevelUnitID", "LeagueLevelUnitName"
            ),
            home_page=_text(element, "HomePage"),
            logo_url=_text(element, "LogoURL"),
            team_rank=_opt_int(element, "TeamRank"),
            number_of_victories=_opt_int(element, "NumberOfVictories"),
            number_of_undefeated=_opt_int(element, "NumberOfUndefeated"),
            youth_team_id=_opt_int(element, "YouthTeamID"),
            player_list=player_list,
        )


@dataclass(frozen=True)
class TeamDetails:
    """Result of the teamdetails file: the user and their teams."""

    user: User
    teams: list[Team]

    @property
    def primary_team(self) -> Team | None:
        """The primary club, falling back to the first team."""
        for team in self.teams:
            if team.is_primary_club:
                return team
        return self.teams[0] if self.teams else None


# === World details ===


@dataclass(frozen=True)
class WorldCountry:
    """Country block nested in a world league."""

    country_id: int | None = None
    country_name: str | None = None
    currency_name: str | None = None
    currency_rate: str | None = None  # comma decimal separator, e.g. "10,0"
    country_code: str | None = None
    date_format: str | None = None
    time_format: str | None = None

    @classmethod
    def from_element(cls, element: ET.Element) -> WorldCountry:
        return cls(
            country_id=_opt_int(element, "CountryID"),
            country_name=_text(element, "CountryName"),
            currency_name=_text(element, "CurrencyName"),
            currency_rate=_text(element, "CurrencyRate"),
            country_code=_text(element, "CountryCode"),
            date_format=_text(element, "DateFormat"),
            time_format=_text(element, "TimeFormat"),
        )

    @property
    def rate(self) -> float | None:
        """Currency rate as a float."""
        if self.currency_rate is None:
            return None
        try:
            return float(self.currency_rate.replace(",", "."))
        except ValueError:
            return None


@dataclass(frozen=True)
class WorldLeague:
    """A league (one per country) from worlddetails."""

    league_id: int
    league_name: str
    country: WorldCountry = field(default_factory=WorldCountry)
    season: int | None = None
    season_offset: int | None = None
    match_round: int | None = None
    short_name: str | None = None
    continent: str | None = None
    zone_name: str | None = None
    english_name: str | None = None
    language_id: int | None = None
    language_name: str | None = None
    national_team_id: int | None = None
    u20_team_id: int | None = None
    active_teams: int | None = None
    active_users: int | None = None
    number_of_levels: int | None = None

    @classmethod
    def from_element(cls, element: ET.Element) -> WorldLeague:
        country_el = _find(element, "Country")
        return cls(
            league_id=_int(element, "LeagueID"),
            league_name=_required(element, "LeagueName"),
            country=(
                WorldCountry.from_element(country_el)
                if country_el is not None
                else WorldCountry()
            ),
            season=_opt_int(element, "Season"),
            season_offset=_opt_int(element, "SeasonOffset"),
            match_round=_opt_int(element, "MatchRound"),
            short_name=_text(element, "ShortName"),
            continent=_text(element, "Continent"),
            zone_name=_text(element, "ZoneName"),
            english_name=_text(element, "EnglishName"),
            # worlddetails spells it LanguageId
            language_id=_opt_int(element, "LanguageId"),
            language_name=_text(element, "LanguageName"),
            national_team_id=_opt_int(element, "NationalTeamId"),
            u20_team_id=_opt_int(element, "U20TeamId"),
            active_teams=_opt_int(element, "ActiveTeams"),
            active_users=_opt_int(element, "ActiveUsers"),
            number_of_levels=_opt_int(element, "NumberOfLevels"),
        )


@dataclass(frozen=True)
class WorldDetails:
    """Global reference data: leagues, countries and currencies."""

    leagues: list[WorldLeague]


# === Players ===


def _speciality(element: ET.Element) -> int | None:
    # players 2.4 says Specialty, older files say Speciality
    value = _opt_int(element, "Specialty")
    if value is None:
        value = _opt_int(element, "Speciality")
    return value


@dataclass(frozen=True)
class PlayerSkills:
    """Skill ratings, only visible on the user's own players."""

    stamina: int
    keeper: int
    playmaker: int
    scorer: int
    passing: int
    winger: int
    defender: int
    set_pieces: int

    @classmethod
    def from_element(cls, element: ET.Element) -> PlayerSkills:
        return cls(
            stamina=_int(element, "StaminaSkill"),
            keeper=_int(element, "KeeperSkill"),
            playmaker=_int(element, "PlaymakerSkill"),
            scorer=_int(element, "ScorerSkill"),
            passing=_int(element, "PassingSkill"),
            winger=_int(element, "WingerSkill"),
            defender=_int(element, "DefenderSkill"),
            set_pieces=_int(element, "SetPiecesSkill"),
        )


@dataclass(frozen=True)
class LastMatch:
    """The player's most recent match appearance."""

    date: str
    match_id: int
    position_code: int
    played_minutes: int
    rating: float | None = None
    rating_end_of_match: float | None = None

    @classmethod
    def from_element(cls, element: ET.Element) -> LastMatch:
        return cls(
            date=_required(element, "Date"),
            match_id=_int(element, "MatchId"),
            position_code=_int(element, "PositionCode"),
            played_minutes=_int(element, "PlayedMinutes"),
            rating=_opt_float(element, "Rating"),
            rating_end_of_match=_opt_float(element, "RatingEndOfMatch"),
        )


@dataclass(frozen=True)
class Player:
    """A player record.

    The same class carries the basic view (players file), the detailed view
    (playerdetails file) and the merged result. Optional fields are None
    when the view does not report them; skills only exist on detailed views.
    """

    player_id: int
    first_name: str
    last_name: str
    age: int
    tsi: int
    player_form: int
    experience: int
    loyalty: int
    leadership: int
    salary: int
    agreeability: int
    aggressiveness: int
    honesty: int
    mother_club_bonus: bool = False
    is_abroad: bool = False
    transfer_listed: bool = False
    nick_name: str | None = None
    player_number: int | None = None
    age_days: int | None = None
    statement: str | None = None
    reference_player_id: int | None = None
    league_goals: int | None = None
    cup_goals: int | None = None
    friendlies_goals: int | None = None
    career_goals: int | None = None
    career_hattricks: int | None = None
    career_assists: int | None = None
    speciality: int | None = None
    national_team_id: int | None = None
    country_id: int | None = None
    caps: int | None = None
    caps_u20: int | None = None
    cards: int | None = None
    injury_level: int | None = None  # -1 = healthy, 0 = bruised, >0 = weeks
    sticker: str | None = None
    flag: str | None = None
    arrival_date: str | None = None
    player_category_id: int | None = None
    mother_club: Reference | None = None
    native_country_id: int | None = None
    native_league_id: int | None = None
    native_league_name: str | None = None
    matches_current_team: int | None = None
    goals_current_team: int | None = None
    assists_current_team: int | None = None
    gender_id: int | None = None
    last_match: LastMatch | None = None
    skills: PlayerSkills | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_element(cls, element: ET.Element) -> Player:
        skills_el = _find(element, "PlayerSkills")
        last_match_el = _find(element, "LastMatch")
        return cls(
            player_id=_int(element, "PlayerID"),
            first_name=_required(element, "FirstName"),
            last_name=_required(element, "LastName"),
            age=_int(element, "Age"),
            tsi=_int(element, "TSI"),
            player_form=_int(element, "PlayerForm"),
            experience=_int(element, "Experience"),
            loyalty=_int(element, "Loyalty"),
            leadership=_int(element, "Leadership"),
            salary=_int(element, "Salary"),
            agreeability=_int(element, "Agreeability"),
            aggressiveness=_int(element, "Aggressiveness"),
            honesty=_int(element, "Honesty"),
            mother_club_bonus=_bool(element, "MotherClubBonus"),
            is_abroad=_bool(element, "IsAbroad"),
            transfer_listed=_bool(element, "TransferListed"),
            nick_name=_text(element, "NickName"),
            player_number=_opt_int(element, "PlayerNumber"),
            age_days=_opt_int(element, "AgeDays"),
            statement=_text(element, "Statement"),
            reference_player_id=_opt_int(element, "ReferencePlayerID"),
            league_goals=_opt_int(element, "LeagueGoals"),
            cup_goals=_opt_int(element, "CupGoals"),
            friendlies_goals=_opt_int(element, "FriendliesGoals"),
            career_goals=_opt_int(element, "CareerGoals"),
            career_hattricks=_opt_int(element, "CareerHattricks"),
            career_assists=_opt_int(element, "CareerAssists"),
            speciality=_speciality(element),
            national_team_id=_opt_int(element, "NationalTeamID"),
            country_id=_opt_int(element, "CountryID"),
            caps=_opt_int(element, "Caps"),
            caps_u20=_opt_int(element, "CapsU20"),
            cards=_opt_int(element, "Cards"),
            injury_level=_opt_int(element, "InjuryLevel"),
            sticker=_text(element, "Sticker"),
            flag=_text(element, "Flag"),
            arrival_date=_text(element, "ArrivalDate"),
            player_category_id=_opt_int(element, "PlayerCategoryId"),
            mother_club=_reference(element, "MotherClub", "TeamID", "TeamName"),
            native_country_id=_opt_int(element, "NativeCountryID"),
            native_league_id=_opt_int(element, "NativeLeagueID"),
            native_league_name=_text(element, "NativeLeagueName"),
            matches_current_team=_opt_int(element, "MatchesCurrentTeam"),
            goals_current_team=_opt_int(element, "GoalsCurrentTeam"),
            assists_current_team=_opt_int(element, "AssistsCurrentTeam"),
            gender_id=_opt_int(element, "GenderID"),
            last_match=(
                LastMatch.from_element(last_match_el) if last_match_el is not None else None
            ),
            skills=(
                PlayerSkills.from_element(skills_el) if skills_el is not None else None
            ),
        )


# === Error responses ===


@dataclass(frozen=True)
class ErrorResponse:
    """Structured error returned by the CHPP data endpoint."""

    error_code: int
    error: str
    error_guid: str | None = None
    request: str | None = None
    line_number: int | None = None


# === Document parsers ===


def _parse_root(body: str) -> ET.Element:
    try:
        return ET.fromstring(body)
    except ET.ParseError as e:
        raise ValueError(f"Invalid XML: {e}") from e


def is_error_response(body: str) -> bool:
    """Error documents are recognised by their ErrorCode element."""
    return "<ErrorCode>" in body


def parse_error(body: str) -> ErrorResponse:
    """Parse a CHPP error document."""
    root = _parse_root(body)
    return ErrorResponse(
        error_code=_int(root, "ErrorCode"),
        error=_text(root, "Error") or "Unknown error",
        error_guid=_text(root, "ErrorGUID"),
        request=_text(root, "Request"),
        line_number=_opt_int(root, "LineNumber"),
    )


def parse_team_details(body: str) -> TeamDetails:
    """Parse a teamdetails document."""
    root = _parse_root(body)
    user_el = _find(root, "User")
    if user_el is None:
        raise ValueError("teamdetails response has no <User>")
    teams_el = _find(root, "Teams")
    teams = [] if teams_el is None else [Team.from_element(t) for t in teams_el.findall("Team")]
    return TeamDetails(user=User.from_element(user_el), teams=teams)


def parse_players(body: str) -> Team:
    """Parse a players document into its team (player_list may be None)."""
    root = _parse_root(body)
    team_el = _find(root, "Team")
    if team_el is None:
        raise ValueError("players response has no <Team>")
    return Team.from_element(team_el)


def parse_world_details(body: str) -> WorldDetails:
    """Parse a worlddetails document."""
    root = _parse_root(body)
    league_list = _find(root, "LeagueList")
    if league_list is None:
        raise ValueError("worlddetails response has no <LeagueList>")
    return WorldDetails(
        leagues=[WorldLeague.from_element(el) for el in league_list.findall("League")]
    )


def parse_player_details(body: str) -> Player:
    """Parse a playerdetails document."""
    root = _parse_root(body)
    player_el = _find(root, "Player")
    if player_el is None:
        raise ValueError("playerdetails response has no <Player>")
    return Player.from_element(player_el)
