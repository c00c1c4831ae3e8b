#!/usr/bin/env python3
"""
``ebill`` command-line console.

Staff commands (login, list, show, create, update, delete) go through the
route guard and the request gateway; ``portal`` commands use the public
endpoints and work without a session. Results are printed as JSON.
"""

import argparse
import asyncio
import getpass
import json
import sys
from typing import Any, Callable, List, Optional

from pydantic import BaseModel

from shared.config import get_config
from shared.errors import EbillClientException, SessionExpired
from shared.logging import configure_logging
from .adapters.resource_client import RESOURCES
from .console import Console, UnknownResource
from .domain.forms import EntityForm
from .domain.views import ListView
from .navigation import PORTAL_PATH
from .session.guard import LOGIN_PATH

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

ConsoleFactory = Callable[[argparse.Namespace], Console]


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


def _emit(value: Any) -> None:
    print(json.dumps(_jsonable(value), indent=2, default=str))


def _fail(message: str) -> int:
    print(f"error: {message}", file=sys.stderr)
    return 1


def _login_hint(console: Console) -> None:
    if console.navigator.at_login:
        print("Session expired or not logged in. Run 'ebill login <username>'.", file=sys.stderr)


def _parse_assignments(assignments: List[str]) -> List[tuple]:
    pairs = []
    for item in assignments or []:
        if "=" not in item:
            raise ValueError(f"expected FIELD=VALUE, got '{item}'")
        name, value = item.split("=", 1)
        pairs.append((name.strip(), value))
    return pairs


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def _enter_view(console: Console, resource: str) -> bool:
    """Navigate to a protected view; ``False`` when the guard turned us away."""
    destination = console.navigator.navigate(RESOURCES[resource].path)
    if destination == LOGIN_PATH:
        _login_hint(console)
        return False
    return True


async def _submit_form(console: Console, view: ListView, form: EntityForm, assignments: List[str]) -> int:
    view.mounted = True
    for name, value in _parse_assignments(assignments):
        form.set_value(name, value)
    if not await view.submit():
        _login_hint(console)
        return _fail(form.error)
    _emit(view.state.items)
    return 0


async def run_command(console: Console, args: argparse.Namespace) -> int:
    command = args.command

    if command == "login":
        password = args.password if args.password is not None else getpass.getpass("Password: ")
        session = await console.login(args.username, password)
        _emit({"username": session.username, "permission": session.permission})
        return 0

    if command == "logout":
        console.logout()
        _emit({"logged_out": True})
        return 0

    if command == "whoami":
        session = console.session.get()
        if session is None:
            return _fail("not logged in")
        _emit({"username": session.username, "permission": session.permission})
        return 0

    if command == "portal":
        view = console.portal_view()
        console.navigator.navigate(PORTAL_PATH)
        await view.lookup(args.identifier)
        if view.error:
            return _fail(view.error)
        if args.portal_command == "lookup":
            if view.message:
                print(view.message, file=sys.stderr)
            _emit(view.bills)
            return 0
        bill = next((b for b in view.bills if str(b.Bill_ID) == str(args.bill_id)), None)
        if bill is None:
            return _fail(f"Bill ID {args.bill_id} is not among the unpaid bills for {args.identifier}")
        if not await view.checkout(bill):
            return _fail(view.checkout_error)
        print(view.message, file=sys.stderr)
        _emit(view.bills)
        return 0

    resource = args.resource
    if resource not in RESOURCES:
        raise UnknownResource(resource)
    if not _enter_view(console, resource):
        return 1

    if command == "list":
        view = console.list_view(resource)
        await view.mount()
        view.unmount()
        if view.state.error:
            _login_hint(console)
            return _fail(view.state.error)
        _emit(view.state.items)
        return 0

    if command == "show":
        _emit(await console.resource(resource).get_by_id(args.id))
        return 0

    if command == "create":
        view = console.list_view(resource)
        return await _submit_form(console, view, view.open_create(), args.set)

    if command == "update":
        record = await console.resource(resource).get_by_id(args.id)
        if record is None:
            return _fail(f"{RESOURCES[resource].singular} {args.id} not found")
        view = console.list_view(resource)
        return await _submit_form(console, view, view.open_edit(record), args.set)

    if command == "delete":
        view = console.list_view(resource)
        view.mounted = True
        confirm = (lambda prompt: True) if args.yes else _confirm
        if not await view.delete(args.id, confirm):
            if view.state.error:
                _login_hint(console)
                return _fail(view.state.error)
            return _fail("cancelled")
        _emit(view.state.items)
        return 0

    return _fail(f"unknown command: {command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ebill", description="Electricity e-billing console.")
    parser.add_argument("--backend-url", default=None, help="Backend base URL (default: EBILL_BACKEND_URL or http://localhost:8080)")
    parser.add_argument("--session-file", default=None, help="Where the session is kept between runs")
    parser.add_argument("--log-level", default=None, type=str.lower, choices=LOG_LEVELS, help="Log level (default: EBILL_LOG_LEVEL or info)")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Log in and store the session")
    login.add_argument("username")
    login.add_argument("--password", default=None, help="Prompted for when omitted")

    sub.add_parser("logout", help="Forget the stored session")
    sub.add_parser("whoami", help="Show the logged-in user")

    resource_names = sorted(RESOURCES)
    list_cmd = sub.add_parser("list", help="List a collection")
    list_cmd.add_argument("resource", choices=resource_names)

    show = sub.add_parser("show", help="Show one record")
    show.add_argument("resource", choices=resource_names)
    show.add_argument("id")

    writable = sorted(name for name, definition in RESOURCES.items() if not definition.read_only)
    create = sub.add_parser("create", help="Create a record")
    create.add_argument("resource", choices=writable)
    create.add_argument("--set", action="append", default=[], metavar="FIELD=VALUE")

    update = sub.add_parser("update", help="Update a record")
    update.add_argument("resource", choices=writable)
    update.add_argument("id")
    update.add_argument("--set", action="append", default=[], metavar="FIELD=VALUE")

    delete = sub.add_parser("delete", help="Delete a record")
    delete.add_argument("resource", choices=writable)
    delete.add_argument("id")
    delete.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    portal = sub.add_parser("portal", help="Public bill lookup and payment")
    portal_sub = portal.add_subparsers(dest="portal_command", required=True)
    lookup = portal_sub.add_parser("lookup", help="List unpaid bills for an email or phone number")
    lookup.add_argument("identifier")
    pay = portal_sub.add_parser("pay", help="Pay one unpaid bill")
    pay.add_argument("identifier")
    pay.add_argument("bill_id")

    return parser


def default_console(args: argparse.Namespace) -> Console:
    overrides = {}
    if args.backend_url:
        overrides["backend_url"] = args.backend_url
    if args.session_file:
        overrides["session_file"] = args.session_file
    if args.log_level:
        overrides["log_level"] = args.log_level
    return Console(config=get_config(**overrides))


def main(argv: Optional[List[str]] = None, console_factory: ConsoleFactory = default_console) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("console", args.log_level or get_config().log_level)
    console = console_factory(args)

    try:
        return asyncio.run(run_command(console, args))
    except KeyboardInterrupt:
        return 130
    except SessionExpired as exc:
        _login_hint(console)
        return _fail(exc.message)
    except EbillClientException as exc:
        return _fail(exc.message)
    except ValueError as exc:
        return _fail(str(exc))


if __name__ == "__main__":
    raise SystemExit(main())
