#!/usr/bin/env python

"""
Ledger errors
"""


class LedgerError(Exception):
    """Base class for everything the ledger reports back to the caller"""


class UserInputError(LedgerError):
    """Rejected input; nothing was changed"""


class EmptyName(UserInputError):
    def __init__(self) -> None:
        super().__init__("Please enter a player name")


class DuplicatePlayer(UserInputError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Player {name} is already taken")


class IncompleteSelection(UserInputError):
    def __init__(self, selected: int) -> None:
        self.selected = selected
        super().__init__(
            f"Please select exactly 4 players for East, South, West and North (got {selected})"
        )


class UnknownPlayer(UserInputError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown player {name}, add them first")


class InvalidScore(UserInputError):
    def __init__(self, seat, player_name: str, value) -> None:
        self.seat = seat
        self.player_name = player_name
        self.value = value
        super().__init__(
            f"Please enter a valid score for {seat.label} ({player_name}): {value!r}"
        )


class StateError(LedgerError):
    """The caller's view of the ledger is out of date"""


class NotFound(StateError):
    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


class AlreadyEditing(StateError):
    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"Game {game_id} is already being edited, save or cancel it first")


class NotEditing(StateError):
    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"Game {game_id} is not being edited")


class StorageError(LedgerError):
    """Snapshot could not be written; in-memory state is still current"""
