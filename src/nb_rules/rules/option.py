from src.nb_rules.selection import TeamSelection


def matches(selection: TeamSelection, winning_team: str) -> bool:
    return selection.team.value == winning_team.strip().upper()
