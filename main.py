#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Habit tracker client - command line entry point

Every command first performs an activation (session check + day rollover),
the same way the app does each time it is opened.

Usage:
    python main.py login EMAIL PASSWORD
    python main.py list
    python main.py add "Read 20 pages"
    python main.py done <habit-id>
    python main.py calendar --month 2025-02
    python main.py run
"""

import argparse
import asyncio
import getpass
import logging
import signal
import sys
from datetime import date
from typing import List, Optional

from config import load_config
from core.exceptions import AuthError, HabitTrackerError, RolloverError
from services import ServiceManager
from services.scheduler import create_scheduler, schedule_daily_rollover
from ui.month_view import render_month
from ui.progress import habits_progress_bar
from utils.datetime_utils import shift_month
from utils.logger import setup_logger

logger = logging.getLogger(__name__)


# ===== COMMANDS =====

async def cmd_login(services: ServiceManager, args) -> int:
    password = args.password or getpass.getpass("Password: ")
    user_id = await services.session.sign_in(args.email, password)
    print(f"Signed in ({user_id})")
    await services.activate()
    return 0


async def cmd_signup(services: ServiceManager, args) -> int:
    password = args.password or getpass.getpass("Password: ")
    user_id = await services.session.sign_up(args.email, password)
    if user_id is None:
        print("Account created, confirm your email and then log in")
        return 0
    print(f"Account created ({user_id})")
    await services.activate()
    return 0


async def cmd_logout(services: ServiceManager, args) -> int:
    await services.session.sign_out()
    print("Signed out")
    return 0


async def cmd_check(services: ServiceManager, args) -> int:
    result = await services.activate()
    if result.rolled_over:
        print(f"New day: {result.last_opened} closed at {(result.snapshot_percentage or 0) * 100:.0f}%")
        if result.backfilled_days:
            print(f"Missed days recorded at 0%: {', '.join(d.isoformat() for d in result.backfilled_days)}")
    else:
        print(f"Up to date ({result.today})")
    return 0


def _print_habits(habit_set) -> None:
    print(habits_progress_bar(habit_set.completed_count, habit_set.total_count))
    if not habit_set.habits:
        print("No habits yet, add one with: add TITLE")
    for habit in habit_set.habits:
        mark = "✅" if habit.is_completed else "⬜️"
        print(f"{mark} {habit.title}  [{habit.id}]")


async def cmd_list(services: ServiceManager, args) -> int:
    await services.activate()
    _print_habits(services.habit_set(services.session.require_user_id()))
    return 0


async def cmd_add(services: ServiceManager, args) -> int:
    await services.activate()
    habit_set = services.habit_set(services.session.require_user_id())
    habit = await habit_set.create(args.title)
    print(f"Added {habit.title} [{habit.id}]")
    return 0


async def _set_completed(services: ServiceManager, habit_id: str, value: bool) -> int:
    await services.activate()
    habit_set = services.habit_set(services.session.require_user_id())
    if habit_set.get(habit_id) is None:
        print(f"Unknown habit {habit_id}")
        return 1
    await habit_set.set_completed(habit_id, value)
    _print_habits(habit_set)
    return 0


async def cmd_done(services: ServiceManager, args) -> int:
    return await _set_completed(services, args.habit_id, True)


async def cmd_undo(services: ServiceManager, args) -> int:
    return await _set_completed(services, args.habit_id, False)


async def cmd_remove(services: ServiceManager, args) -> int:
    await services.activate()
    habit_set = services.habit_set(services.session.require_user_id())
    if habit_set.get(args.habit_id) is None:
        print(f"Unknown habit {args.habit_id}")
        return 1
    await habit_set.delete(args.habit_id)
    print(f"Removed {args.habit_id}")
    return 0


async def cmd_calendar(services: ServiceManager, args) -> int:
    await services.activate()
    owner_id = services.session.require_user_id()
    today = services.clock.today()
    if args.month:
        month = date.fromisoformat(f"{args.month}-01")
    else:
        month = shift_month(today, args.offset)
    rows = await services.recorder.get_month(owner_id, month)
    print(render_month(month, services.recorder.completion_map(rows), today=today))
    return 0


async def cmd_run(services: ServiceManager, args) -> int:
    """Stay in the foreground and run the rollover check right after midnight"""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops
            pass

    async def activation():
        try:
            result = await services.activate()
            logger.info(f"⏰ Scheduled activation done (rolled over: {result.rolled_over})")
        except HabitTrackerError as e:
            logger.error(f"❌ Scheduled activation failed: {e}")

    await activation()
    scheduler = create_scheduler(services.config.rollover.timezone)
    schedule_daily_rollover(
        scheduler, activation,
        hour=services.config.rollover.check_hour,
        minute=services.config.rollover.check_minute,
    )
    scheduler.start()
    logger.info("🚀 Running, press Ctrl+C to stop")
    try:
        await stop.wait()
    finally:
        scheduler.shutdown(wait=False)
    return 0


COMMANDS = {
    "login": cmd_login,
    "signup": cmd_signup,
    "logout": cmd_logout,
    "check": cmd_check,
    "list": cmd_list,
    "add": cmd_add,
    "done": cmd_done,
    "undo": cmd_undo,
    "remove": cmd_remove,
    "calendar": cmd_calendar,
    "run": cmd_run,
}


# ===== ARGUMENTS =====

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Daily habit tracker')
    sub = parser.add_subparsers(dest='command', required=True)

    for name in ('login', 'signup'):
        p = sub.add_parser(name, help='Sign in' if name == 'login' else 'Create an account')
        p.add_argument('email')
        p.add_argument('password', nargs='?', help='Prompted when omitted')

    sub.add_parser('logout', help='Sign out')
    sub.add_parser('check', help='Run the day rollover check')
    sub.add_parser('list', help="Show today's habits")

    p = sub.add_parser('add', help='Add a habit')
    p.add_argument('title')

    for name, help_text in (('done', 'Mark a habit completed'),
                            ('undo', 'Mark a habit not completed'),
                            ('remove', 'Delete a habit')):
        p = sub.add_parser(name, help=help_text)
        p.add_argument('habit_id')

    p = sub.add_parser('calendar', help='Monthly completion calendar')
    p.add_argument('--month', help='YYYY-MM, defaults to the current month')
    p.add_argument('--offset', type=int, default=0, help='Months relative to the current one')

    sub.add_parser('run', help='Keep running and roll over every night')
    return parser


async def run_command(args, config) -> int:
    services = ServiceManager(config)
    try:
        return await COMMANDS[args.command](services, args)
    finally:
        await services.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    config.ensure_directories()
    setup_logger(config)

    try:
        return asyncio.run(run_command(args, config))
    except AuthError as e:
        logger.error(f"🔒 {e}")
        print("Not signed in or session expired, please log in again", file=sys.stderr)
        return 1
    except RolloverError as e:
        logger.error(f"❌ Rollover failed at stage {e.stage}: {e}")
        print("Could not close out the previous day, it will be retried next time", file=sys.stderr)
        return 1
    except HabitTrackerError as e:
        logger.error(f"❌ {e}")
        print("Something went wrong, please try again", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        logger.info("👋 Stopped by user")
        return 130


# ===== ENTRY POINT =====

if __name__ == "__main__":
    sys.exit(main())
