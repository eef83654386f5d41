"""Reference team table and per-user team assignment."""
import logging
from collections import namedtuple

from services import NotFound, UnknownTeam, require
from store import TEAM, TEAM_ASSIGNMENT

logger = logging.getLogger(__name__)

TeamReference = namedtuple("TeamReference", ["name", "color", "logo_url"])

SEED_TEAMS = (
    TeamReference(
        "RCB",
        "#D21A28",
        "https://logowik.com/royal-challengers-bangalore-logo-vector-svg-pdf-ai-eps-cdr-free-download-13717.html",
    ),
    TeamReference("MI", "#045193", "https://logowik.com/content/uploads/images/mumbai-indians2544.jpg"),
    TeamReference("CSK", "#F8CD33", "https://logowik.com/content/uploads/images/chennai-super-kings3461.jpg"),
    TeamReference("KKR", "#3C0D6E", "https://logowik.com/content/uploads/images/kolkata-knight-riders6292.jpg"),
    TeamReference("DC", "#0057B8", "https://logowik.com/content/uploads/images/delhi-capitals3041.jpg"),
)


class TeamService:
    def __init__(self, store, teams=SEED_TEAMS):
        self.store = store
        self.teams = tuple(teams)

    def seed_catalog(self):
        """Upsert every reference team by name. Safe to run repeatedly."""
        for team in self.teams:
            self.store.upsert(
                TEAM,
                {"name": team.name},
                {"name": team.name, "color": team.color, "logoUrl": team.logo_url},
            )
        logger.info("Teams seeded successfully (%d teams)", len(self.teams))
        return len(self.teams)

    def list_teams(self):
        return self.store.find_many(TEAM, {}, sort="name")

    def assign_team(self, username, team):
        """
        Point username at team, replacing any earlier choice.

        color and logoUrl are copied from the reference row now and are not
        kept in sync with it afterwards.
        """
        require(username=username, team=team)

        reference = self.store.find_one(TEAM, {"name": team})
        if not reference:
            raise UnknownTeam(team)

        assignment = {
            "username": username,
            "team": reference["name"],
            "color": reference["color"],
            "logoUrl": reference["logoUrl"],
        }
        self.store.upsert(TEAM_ASSIGNMENT, {"username": username}, assignment)
        logger.info("Assigned team %s to %s", reference["name"], username)
        return assignment

    def get_assignment(self, username):
        require(username=username)

        assignment = self.store.find_one(TEAM_ASSIGNMENT, {"username": username})
        if not assignment:
            raise NotFound("Team not found for this user")
        return assignment
