from typing import NewType

TournamentId = NewType("TournamentId", int)
TeamId = NewType("TeamId", int)
MatchId = NewType("MatchId", int)
StandingId = NewType("StandingId", int)

# Issued by the external identity provider.
UserId = NewType("UserId", str)
