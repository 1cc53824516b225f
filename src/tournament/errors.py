"""
Errors raised by the tournament engine.

Every error is a precondition or validation failure detected before any
record is written, so none of them carry retry semantics.
"""


class TournamentError(Exception):
    """Base class for all tournament engine errors."""


class InvalidConfiguration(TournamentError):
    pass


class InsufficientTeams(TournamentError):
    def __init__(self, required, available):
        self.required = required
        self.available = available
        super().__init__(f"Need at least {required} teams, but only have {available}")


class NoGroupsDefined(TournamentError):
    def __init__(self, message="No groups found. Please draw groups first."):
        super().__init__(message)


class NoVenuesProvided(TournamentError):
    def __init__(self, message="Please provide at least one venue."):
        super().__init__(message)


class InvalidManualGroups(TournamentError):
    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("Invalid group assignment: " + "; ".join(self.problems))


class InvalidTeam(TournamentError):
    pass


class TeamNotFound(TournamentError):
    def __init__(self, team_id):
        self.team_id = team_id
        super().__init__(f"Team not found: {team_id}")


class GroupNotFound(TournamentError):
    def __init__(self, group_id):
        self.group_id = group_id
        super().__init__(f"Group not found: {group_id}")


class MatchNotFound(TournamentError):
    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(f"Match not found: {match_id}")


class MatchNotReady(TournamentError):
    """Raised when a score is entered for a match whose sides are not both teams."""


class InvalidMatchState(TournamentError):
    pass


class InvalidScore(TournamentError):
    pass


class UnresolvedKnockoutTie(TournamentError):
    def __init__(self, match):
        self.match_id = match.id
        label = match.name or match.id
        super().__init__(f"Knockout match {label} is level; a decisive penalty score is required")
