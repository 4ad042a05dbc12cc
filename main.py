"""
Wedding Manager — Entry Point.

Command line front end over the client core:

    python main.py login EMAIL PASSWORD
    python main.py register EMAIL PASSWORD NAME
    python main.py logout
    python main.py dashboard
    python main.py guests [--search TEXT] [--status confirmed|declined|pending]
    python main.py tasks [--search TEXT] [--kind pending|completed|overdue|urgent]
    python main.py gifts [--search TEXT] [--kind money|items|services]
"""

import argparse
import asyncio
import logging
import sys

from wedding_manager.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from wedding_manager.adapters.factory import AppContext, create_app
from wedding_manager.core.queries import (
    GiftFilter,
    GuestFilter,
    TaskFilter,
    filter_gifts,
    filter_guests,
    filter_tasks,
    recent_guests,
    upcoming_tasks,
)

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wedding-manager")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in and store the session")
    login.add_argument("email")
    login.add_argument("password")

    register = sub.add_parser("register", help="Create an account and sign in")
    register.add_argument("email")
    register.add_argument("password")
    register.add_argument("name")

    sub.add_parser("logout", help="Forget the stored session")
    sub.add_parser("dashboard", help="Load everything and print the summary")

    guests = sub.add_parser("guests", help="List guests")
    guests.add_argument("--search", default="")
    guests.add_argument(
        "--status",
        choices=[f.value for f in GuestFilter],
        default=GuestFilter.ALL.value,
    )

    tasks = sub.add_parser("tasks", help="List tasks")
    tasks.add_argument("--search", default="")
    tasks.add_argument(
        "--kind",
        choices=[f.value for f in TaskFilter],
        default=TaskFilter.ALL.value,
    )

    gifts = sub.add_parser("gifts", help="List gifts")
    gifts.add_argument("--search", default="")
    gifts.add_argument(
        "--kind",
        choices=[f.value for f in GiftFilter],
        default=GiftFilter.ALL.value,
    )
    return parser


async def _restore_session(app: AppContext) -> bool:
    await app.session.start()
    if not app.session.is_authenticated:
        print(app.session.error_message or "Not signed in. Run: main.py login EMAIL PASSWORD",
              file=sys.stderr)
        return False
    return True


def _print_dashboard(app: AppContext) -> None:
    stats = app.data.dashboard_stats
    print(f"Guests:   {stats.confirmed_guests}/{stats.total_guests} confirmed "
          f"({stats.guest_confirmation_percentage:.0f}%)")
    print(f"Budget:   {stats.spent_amount:.2f} of {stats.total_budget:.2f} spent "
          f"({stats.budget_percentage:.0f}%), {stats.remaining_budget:.2f} remaining")
    print(f"Tasks:    {stats.completed_tasks}/{stats.total_tasks} done "
          f"({stats.task_completion_percentage:.0f}%)")
    print(f"Gifts:    {stats.total_gifts} received, {stats.total_gift_amount:.2f} in money")
    print(f"Messages: {stats.unread_messages} unread")

    recent = recent_guests(app.data.guests)
    if recent:
        print("\nLatest RSVPs:")
        for guest in recent:
            print(f"  {guest.full_name} ({guest.attendance.display_name})")

    upcoming = upcoming_tasks(app.data.tasks.tasks if app.data.tasks else ())
    if upcoming:
        print("\nDue this week:")
        for task in upcoming:
            print(f"  {task.due_date:%Y-%m-%d} {task.title}")


def _print_guests(app: AppContext, args: argparse.Namespace) -> None:
    for guest in filter_guests(app.data.guests, args.search, GuestFilter(args.status)):
        print(f"#{guest.id:<5} {guest.full_name:<30} "
              f"{guest.attendance.display_name:<6} x{guest.guest_count}")


def _print_tasks(app: AppContext, args: argparse.Namespace) -> None:
    tasks = app.data.tasks.tasks if app.data.tasks else ()
    for task in filter_tasks(tasks, args.search, TaskFilter(args.kind)):
        mark = "x" if task.is_completed else " "
        due = f"{task.due_date:%Y-%m-%d}" if task.due_date else "-"
        print(f"[{mark}] {due:<10} {task.priority.display_name:<7} {task.title}")


def _print_gifts(app: AppContext, args: argparse.Namespace) -> None:
    gifts = app.data.gifts.gifts if app.data.gifts else ()
    for gift in filter_gifts(gifts, args.search, GiftFilter(args.kind)):
        detail = f"{gift.amount:.2f}" if gift.amount is not None else (gift.description or "")
        print(f"{gift.received_date:%Y-%m-%d} {gift.guest_name:<25} "
              f"{gift.category.display_name:<8} {detail}")


_LISTINGS = {
    "dashboard": lambda app, args: _print_dashboard(app),
    "guests": _print_guests,
    "tasks": _print_tasks,
    "gifts": _print_gifts,
}


async def run(args: argparse.Namespace, app: AppContext) -> int:
    if args.command == "login":
        ok = await app.session.login(args.email, args.password)
    elif args.command == "register":
        ok = await app.session.register(args.email, args.password, args.name)
    elif args.command == "logout":
        app.session.logout()
        print("Signed out.")
        return 0
    else:
        if not await _restore_session(app):
            return 1
        await app.data.load_all()
        _LISTINGS[args.command](app, args)
        if app.data.last_error:
            print(app.data.last_error, file=sys.stderr)
            return 1
        return 0

    if ok:
        user = app.session.current_user
        print(f"Signed in as {user.name} <{user.email}>")
        return 0
    print(app.session.error_message, file=sys.stderr)
    return 1


async def _main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    app = create_app()
    try:
        return await run(args, app)
    finally:
        await app.aclose()


def main(argv: list[str] | None = None) -> None:
    try:
        sys.exit(asyncio.run(_main(argv)))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
