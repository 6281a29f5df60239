"""Shared pytest fixtures: sample CHPP documents, stores and fakes."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from chppsync.client.state import SyncStore
from chppsync.core.oauth import AccessToken, ConsumerCredentials


class MemorySecretStore:
    """In-memory SecretStore for tests."""

    def __init__(self, secrets: dict[str, str] | None = None) -> None:
        self.secrets = dict(secrets or {})

    def get_secret(self, key: str) -> str | None:
        return self.secrets.get(key)

    def store_secret(self, key: str, value: str) -> None:
        self.secrets[key] = value

    def delete_secret(self, key: str) -> None:
        self.secrets.pop(key, None)


def _player_core(player_id: int) -> str:
    return f"""
        <PlayerID>{player_id}</PlayerID>
        <FirstName>First{player_id}</FirstName>
        <LastName>Last{player_id}</LastName>
        <Age>25</Age>
        <AgeDays>10</AgeDays>
        <TSI>1500</TSI>
        <PlayerForm>6</PlayerForm>
        <Experience>4</Experience>
        <Loyalty>10</Loyalty>
        <Leadership>3</Leadership>
        <Salary>25000</Salary>
        <Agreeability>2</Agreeability>
        <Aggressiveness>3</Aggressiveness>
        <Honesty>3</Honesty>
        <MotherClubBonus>False</MotherClubBonus>
        <IsAbroad>False</IsAbroad>
        <TransferListed>False</TransferListed>
    """


@pytest.fixture
def consumer() -> ConsumerCredentials:
    """Consumer credentials for tests."""
    return ConsumerCredentials(key="consumer-key", secret="consumer-secret")


@pytest.fixture
def access_token() -> AccessToken:
    """Access token for tests."""
    return AccessToken(token="access-token", secret="access-secret")


@pytest.fixture
def secret_store() -> MemorySecretStore:
    """Empty in-memory secret store."""
    return MemorySecretStore()


@pytest.fixture
def store(tmp_path: Path) -> Generator[SyncStore, None, None]:
    """SyncStore backed by a temporary database."""
    sync_store = SyncStore(tmp_path / "chppsync.db")
    yield sync_store
    sync_store.close()


@pytest.fixture
def team_details_xml() -> str:
    """teamdetails document: one user, a secondary team listed before the primary."""
    return """<?xml version="1.0" encoding="utf-8"?>
<HattrickData>
  <FileName>teamdetails.xml</FileName>
  <Version>3.7</Version>
  <User>
    <UserID>1000</UserID>
    <Language>
      <LanguageID>2</LanguageID>
      <LanguageName>English</LanguageName>
    </Language>
    <SupporterTier>gold</SupporterTier>
    <Loginname>manager</Loginname>
    <Name>Test Manager</Name>
    <SignupDate>2010-01-01 10:00:00</SignupDate>
    <ActivationDate>2010-01-01 10:05:00</ActivationDate>
    <LastLoginDate>2024-05-01 12:00:00</LastLoginDate>
    <HasManagerLicense>True</HasManagerLicense>
  </User>
  <Teams>
    <Team>
      <TeamID>5000</TeamID>
      <TeamName>Secondary FC</TeamName>
      <IsPrimaryClub>False</IsPrimaryClub>
      <League>
        <LeagueID>1</LeagueID>
        <LeagueName>Sverige</LeagueName>
      </League>
      <Country>
        <CountryID>1</CountryID>
        <CountryName>Sverige</CountryName>
      </Country>
    </Team>
    <Team>
      <TeamID>4000</TeamID>
      <TeamName>Primary United</TeamName>
      <ShortTeamName>PU</ShortTeamName>
      <IsPrimaryClub>True</IsPrimaryClub>
      <FoundedDate>2010-01-01 10:00:00</FoundedDate>
      <Arena>
        <ArenaID>4001</ArenaID>
        <ArenaName>Home Ground</ArenaName>
      </Arena>
      <League>
        <LeagueID>2</LeagueID>
        <LeagueName>England</LeagueName>
      </League>
      <Country>
        <CountryID>2</CountryID>
        <CountryName>England</CountryName>
      </Country>
      <Region>
        <RegionID>10</RegionID>
        <RegionName>London</RegionName>
      </Region>
      <LeagueLevelUnit>
        <LeagueLevelUnitID>300</LeagueLevelUnitID>
        <LeagueLevelUnitName>IV.12</LeagueLevelUnitName>
      </LeagueLevelUnit>
      <YouthTeamID>4002</YouthTeamID>
    </Team>
  </Teams>
</HattrickData>
"""


@pytest.fixture
def world_details_xml() -> str:
    """worlddetails document with two leagues."""
    return """<?xml version="1.0" encoding="utf-8"?>
<HattrickData>
  <FileName>worlddetails.xml</FileName>
  <Version>1.9</Version>
  <LeagueList>
    <League>
      <LeagueID>1</LeagueID>
      <LeagueName>Sverige</LeagueName>
      <Season>88</Season>
      <SeasonOffset>0</SeasonOffset>
      <MatchRound>5</MatchRound>
      <ShortName>Sverige</ShortName>
      <Continent>Europe</Continent>
      <ZoneName>Europe</ZoneName>
      <EnglishName>Sweden</EnglishName>
      <LanguageId>1</LanguageId>
      <LanguageName>Svenska</LanguageName>
      <Country>
        <CountryID>1</CountryID>
        <CountryName>Sverige</CountryName>
        <CurrencyName>Kr</CurrencyName>
        <CurrencyRate>1,0</CurrencyRate>
        <CountryCode>SE</CountryCode>
        <DateFormat>yyyy-MM-dd</DateFormat>
        <TimeFormat>HH:mm</TimeFormat>
      </Country>
      <NationalTeamId>3000</NationalTeamId>
      <U20TeamId>3001</U20TeamId>
      <ActiveTeams>5000</ActiveTeams>
      <ActiveUsers>4800</ActiveUsers>
      <NumberOfLevels>9</NumberOfLevels>
    </League>
    <League>
      <LeagueID>2</LeagueID>
      <LeagueName>England</LeagueName>
      <Season>88</Season>
      <EnglishName>England</EnglishName>
      <LanguageId>2</LanguageId>
      <LanguageName>English</LanguageName>
      <Country>
        <CountryID>2</CountryID>
        <CountryName>England</CountryName>
        <CurrencyName>GBP</CurrencyName>
        <CurrencyRate>10,0</CurrencyRate>
        <CountryCode>GB</CountryCode>
      </Country>
      <NumberOfLevels>7</NumberOfLevels>
    </League>
  </LeagueList>
</HattrickData>
"""


@pytest.fixture
def players_xml() -> str:
    """players document: team 4000 with players 101 and 102."""
    return f"""<?xml version="1.0" encoding="utf-8"?>
<HattrickData>
  <FileName>players.xml</FileName>
  <Version>2.4</Version>
  <Team>
    <TeamID>4000</TeamID>
    <TeamName>Primary United</TeamName>
    <PlayerList>
      <Player>
        {_player_core(101)}
        <PlayerNumber>7</PlayerNumber>
        <Statement>Basic statement</Statement>
        <Caps>3</Caps>
        <LeagueGoals>5</LeagueGoals>
        <Specialty>1</Specialty>
        <NativeCountryID>2</NativeCountryID>
      </Player>
      <Player>
        {_player_core(102)}
        <CountryID>1</CountryID>
        <LeagueGoals>0</LeagueGoals>
      </Player>
    </PlayerList>
  </Team>
</HattrickData>
"""


@pytest.fixture
def player_details_xml() -> Callable[[int], str]:
    """Factory for playerdetails documents (skills visible, no Statement/CountryID)."""

    def build(player_id: int) -> str:
        return f"""<?xml version="1.0" encoding="utf-8"?>
<HattrickData>
  <FileName>playerdetails.xml</FileName>
  <Version>3.1</Version>
  <Player>
    {_player_core(player_id)}
    <CareerGoals>12</CareerGoals>
    <NativeCountryID>2</NativeCountryID>
    <MotherClub>
      <TeamID>4000</TeamID>
      <TeamName>Primary United</TeamName>
    </MotherClub>
    <PlayerSkills>
      <StaminaSkill>7</StaminaSkill>
      <KeeperSkill>1</KeeperSkill>
      <PlaymakerSkill>6</PlaymakerSkill>
      <ScorerSkill>8</ScorerSkill>
      <PassingSkill>5</PassingSkill>
      <WingerSkill>4</WingerSkill>
      <DefenderSkill>3</DefenderSkill>
      <SetPiecesSkill>2</SetPiecesSkill>
    </PlayerSkills>
    <LastMatch>
      <Date>2024-05-01 20:00:00</Date>
      <MatchId>700000</MatchId>
      <PositionCode>106</PositionCode>
      <PlayedMinutes>90</PlayedMinutes>
      <Rating>3,5</Rating>
      <RatingEndOfMatch>3.0</RatingEndOfMatch>
    </LastMatch>
  </Player>
</HattrickData>
"""

    return build


@pytest.fixture
def error_xml() -> Callable[[int, str], str]:
    """Factory for CHPP error documents."""

    def build(code: int, message: str = "Server error") -> str:
        return f"""<?xml version="1.0" encoding="utf-8"?>
<HattrickData>
  <FileName>chpperror.xml</FileName>
  <Error>{message}</Error>
  <ErrorCode>{code}</ErrorCode>
  <ErrorGUID>abc-123</ErrorGUID>
  <Request>/chppxml.ashx?file=players</Request>
  <LineNumber>0</LineNumber>
</HattrickData>
"""

    return build
