#!/usr/bin/env python

"""
Command handlers for Telegram bot
"""

import logging
from typing import Any, List

from telegram import Update
from telegram.ext import ContextTypes, CommandHandler

from ..config import Config
from ..errors import LedgerError, StateError, StorageError
from ..ledger.engine import LedgerEngine
from ..models.game import Game
from ..models.scoring import SEAT_ORDER, STARTING_POINTS
from ..utils import format_average_rank, format_date, format_final_score, format_points

logger = logging.getLogger(__name__)

UNSAVED_WARNING = "\n\n⚠️ Could not save, this change only lives until the bot restarts."

# Set during initialization
engine = None
config = None


def init(app: Any, config_obj: Config, _engine: LedgerEngine):
    global config, engine

    config = config_obj
    engine = _engine

    register_commands(app)


def register_commands(app):
    app.add_handler(CommandHandler(["start", "help"], help_command))
    app.add_handler(CommandHandler("addplayer", add_player))
    app.add_handler(CommandHandler("players", players))
    app.add_handler(CommandHandler("leaderboard", leaderboard))
    app.add_handler(CommandHandler("history", history))
    app.add_handler(CommandHandler("record", record))
    app.add_handler(CommandHandler("delete", delete))
    app.add_handler(CommandHandler("edit", edit))
    app.add_handler(CommandHandler("save", save))
    app.add_handler(CommandHandler("cancel", cancel))
    app.add_handler(CommandHandler("stat", stat))
    app.add_handler(CommandHandler("recalc", recalc))


def format_game(game: Game, position: int) -> str:
    lines = [f"Game {position} - {format_date(game.date)} [{game.id}]"]
    for result in game.results_by_rank():
        lines.append(
            f"{result.rank}位: {result.name} ({result.position.value}) "
            f"{format_final_score(result.final_score)} → {format_points(result.leaderboard_score)}"
        )
    return "\n".join(lines)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = f"""
🀄 Mahjong Ledger 🀄

/addplayer <name> - register a player
/players - list registered players
/leaderboard - standings by total points
/history [n] - last n games
/record <E> <score> <S> <score> <W> <score> <N> <score> - record a game, seats in 东南西北 order
/delete <game> - delete a game
/edit <game> - start editing a game's scores
/save <game> <E> <S> <W> <N> - save the edited scores
/cancel <game> - cancel an edit
/stat <name> - one player's record
/recalc - rebuild all stats from the game history

<game> is the number shown by /history or the game id.
Final scores usually start from {STARTING_POINTS:,}.
"""
    await update.message.reply_text(message)


async def add_player(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    name = " ".join(context.args)
    suffix = ""
    try:
        player = engine.add_player(name)
    except StorageError:
        player = engine.registry.find(name)
        suffix = UNSAVED_WARNING
    except LedgerError as e:
        await update.message.reply_text(str(e))
        return

    await update.message.reply_text(f"Added {player.name}{suffix}")


async def players(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    registered = list(engine.registry)
    if not registered:
        await update.message.reply_text("No players yet. Add one with /addplayer <name>")
        return

    message = f"Players ({len(registered)}):\n" + "\n".join(player.name for player in registered)
    if len(registered) < 4:
        message += "\n\nNeed at least 4 players to record a game."
    await update.message.reply_text(message)


async def leaderboard(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    standings = engine.get_leaderboard()[: config.leaderboard_limit]

    if not standings:
        await update.message.reply_text("No players yet. Add a player to get started!")
        return

    message = "🀄 Leaderboard 🀄\n\n"
    for i, player in enumerate(standings):
        rank = i + 1
        champion = "👑 " if rank == 1 else ""
        counts = "/".join(str(player.rank_counts[r]) for r in sorted(player.rank_counts))
        message += (
            f"{rank}. {champion}{player.name}: {format_points(player.total_points, signed=False)} "
            f"| {player.games_played} games | avg {format_average_rank(player.average_rank, player.games_played)} "
            f"| {counts}\n"
        )

    await update.message.reply_text(message)


async def history(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    games = engine.get_history()
    if not games:
        await update.message.reply_text("No games recorded yet.")
        return

    limit = config.history_limit
    if context.args and context.args[0].isdigit():
        limit = max(int(context.args[0]), 1)

    message = "\n\n".join(format_game(game, i + 1) for i, game in enumerate(games[:limit]))
    await update.message.reply_text(message)


def _parse_seat_args(args: List[str]) -> List[Any]:
    """Pair up `name score` arguments, leaving missing seats empty"""
    assignments: List[Any] = []
    for index in range(len(SEAT_ORDER)):
        pair = args[index * 2:index * 2 + 2]
        if not pair:
            assignments.append(None)
        else:
            assignments.append({"name": pair[0], "finalScore": pair[1] if len(pair) > 1 else None})
    return assignments


async def record(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    suffix = ""
    try:
        game = engine.record_game(_parse_seat_args(context.args))
    except StorageError:
        game = engine.get_history()[0]
        suffix = UNSAVED_WARNING
    except LedgerError as e:
        await update.message.reply_text(str(e))
        return

    await update.message.reply_text(f"Recorded!\n\n{format_game(game, 1)}{suffix}")


async def delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not context.args:
        await update.message.reply_text("Usage: /delete <game>")
        return

    suffix = ""
    try:
        game = engine.ledger.resolve(context.args[0])
        if len(context.args) < 2 or context.args[1].lower() != "confirm":
            position = engine.ledger.position(game.id)
            await update.message.reply_text(
                f"{format_game(game, position)}\n\n"
                f"This will recalculate all player statistics. "
                f"Send /delete {game.id} confirm to delete it."
            )
            return
        engine.delete_game(game.id)
    except StorageError:
        suffix = UNSAVED_WARNING
    except LedgerError as e:
        await update.message.reply_text(str(e))
        return

    await update.message.reply_text(f"Deleted game {game.id}{suffix}")


async def edit(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not context.args:
        await update.message.reply_text("Usage: /edit <game>")
        return

    try:
        game = engine.ledger.resolve(context.args[0])
        session = engine.begin_edit(game.id)
    except LedgerError as e:
        await update.message.reply_text(str(e))
        return

    lines = [f"Editing game {session.game_id} - {format_date(session.date)}"]
    for result in session.original_results:
        lines.append(f"{result.position.value} ({result.name}): {format_final_score(result.final_score)}")
    lines.append(f"\nSend /save {session.game_id} <E> <S> <W> <N> or /cancel {session.game_id}")
    await update.message.reply_text("\n".join(lines))


async def save(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not context.args:
        await update.message.reply_text("Usage: /save <game> <E> <S> <W> <N>")
        return

    suffix = ""
    try:
        game = engine.ledger.resolve(context.args[0])
        game = engine.commit_edit(game.id, context.args[1:])
    except StorageError:
        suffix = UNSAVED_WARNING
    except StateError as e:
        await update.message.reply_text(str(e))
        return
    except LedgerError as e:
        await update.message.reply_text(f"{e}\nEdit discarded, the original scores are kept.")
        return

    position = engine.ledger.position(game.id)
    await update.message.reply_text(f"Updated!\n\n{format_game(game, position)}{suffix}")


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if context.args:
        try:
            game_id = engine.ledger.resolve(context.args[0]).id
        except LedgerError as e:
            await update.message.reply_text(str(e))
            return
    else:
        game_id = engine.editing_game_id

    if game_id is None or game_id != engine.editing_game_id:
        await update.message.reply_text("Nothing to cancel.")
        return

    engine.cancel_edit(game_id)
    await update.message.reply_text(f"Edit of game {game_id} cancelled.")


async def stat(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    name = " ".join(context.args)
    player = engine.registry.find(name) if name else None
    if player is None:
        await update.message.reply_text("Usage: /stat <registered player name>")
        return

    results = engine.player_results(player.name)
    logger.info(f"stat call: {player}")

    message = f"""
{player.name}'s Performance
Total Points: {format_points(player.total_points)}
Games Played: {player.games_played}
Average Rank: {format_average_rank(player.average_rank, player.games_played)}

1st: {player.rank_counts[1]}
2nd: {player.rank_counts[2]}
3rd: {player.rank_counts[3]}
4th: {player.rank_counts[4]}
"""
    if results:
        message += "\nRecent games:\n"
        for game, result in results[: config.history_limit]:
            message += (
                f"{format_date(game.date)}: {result.rank}位 "
                f"{format_final_score(result.final_score)} → {format_points(result.leaderboard_score)}\n"
            )
    await update.message.reply_text(message)


async def recalc(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    suffix = ""
    try:
        engine.recalculate()
    except StorageError:
        suffix = UNSAVED_WARNING

    await update.message.reply_text(f"Recalculated stats from {len(engine.ledger)} games.{suffix}")
