#!/usr/bin/env python3

import os
import sys
import json
import argparse
import logging.config
from typing import List, MutableMapping, Optional
from collections import OrderedDict

import uvicorn

from posts_core import settings as _settings
from posts_core.version import PROJECT_VERSION
from posts_core.api.api import create_app
from posts_core.persistence import database, seeding
from posts_core.persistence.errors import SeedDataError, StoreError
from posts_core.persistence.store import PostStore


SERVER_APP_IMPORT_STRING = "posts_core.api:api.app"


def get_parser(program: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=program)
    parser.add_argument("--version", action="version", version=f"%(prog)s {PROJECT_VERSION}")

    commands = parser.add_subparsers(
        description="Available sub-commands: init, migrate, seed, posts*, run",
        dest="command",
        required=True,
        metavar="<command>",
        help="the sub-command to be executed (some have their own subcommands, too)"
    )

    parser_init = commands.add_parser(
        "init",
        description="Initialize the project by creating the config file"
    )

    parser_migrate = commands.add_parser(
        "migrate",
        description="Apply the database migrations to create or upgrade the database schema"
    )

    parser_seed = commands.add_parser(
        "seed",
        description="Populate the database with the seed dataset if it doesn't contain any post yet"
    )

    parser_posts = commands.add_parser(
        "posts",
        description="Manage the stored posts"
    )
    posts_command = parser_posts.add_subparsers(
        description="Available actions: show, clear",
        dest="action",
        metavar="<action>",
        required=True,
        help="action to perform for posts"
    )
    parser_posts_show = posts_command.add_parser(
        "show",
        description="Show a list of all posts"
    )
    parser_posts_clear = posts_command.add_parser(
        "clear",
        description="Delete all posts (identifiers that were allocated by the server won't be reused)"
    )

    parser_run = commands.add_parser(
        "run",
        description="Run 'uvicorn' ASGI server to serve the posts core REST API"
    )

    parser_init.add_argument(
        "--database",
        type=str,
        metavar="url",
        help="Database connection URL including scheme and auth"
    )
    parser_init.add_argument(
        "--force",
        action="store_true",
        help="Allow overwriting an existing config file"
    )

    parser_migrate.add_argument(
        "--revision",
        type=str,
        default="head",
        metavar="rev",
        help="Target revision of the database schema (default: 'head')"
    )

    parser_seed.add_argument(
        "--file",
        type=str,
        metavar="path",
        help="JSON file with the dataset (overwrites config, defaults to the bundled dataset)"
    )

    parser_posts_show.add_argument(
        "--json",
        action="store_true",
        help="Print the result in JSON format instead of human-readable text"
    )
    parser_posts_show.add_argument(
        "--indent",
        type=int,
        metavar="n",
        help="(JSON-only) Indent the JSON response with n spaces (default: none)"
    )

    parser_posts_clear.add_argument(
        "--yes",
        action="store_true",
        help="Don't ask for confirmation"
    )

    parser_run.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrite config)"
    )
    parser_run.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrite config)"
    )
    parser_run.add_argument(
        "--config",
        type=str,
        metavar="config",
        default="config.json",
        help="Overwrite the config file (defaults to 'config.json')"
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable full debug mode including tracebacks via HTTP (probably insecure)"
    )
    parser_run.add_argument(
        "--debug-sql",
        action="store_true",
        help="Enable echoing of database actions (overwrites config)"
    )
    parser_run.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload"
    )
    parser_run.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="n",
        help="Number of worker processes (not valid with --reload)",
    )
    parser_run.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logs"
    )
    parser_run.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    return parser


def _get_store(settings: _settings.Settings) -> PostStore:
    return PostStore(database.Database(settings.database.connection, settings.database.debug_sql))


def init_project(args: argparse.Namespace) -> int:
    path = os.path.abspath(_settings.CONFIG_PATHS[0])
    if os.path.exists(path) and not args.force:
        print(
            f"A config file has been found at {path!r} and will be used. If you want a fresh "
            "installation, remove the config file or use '--force', then run this command again.",
            file=sys.stderr
        )
        return 1

    conf = _settings.get_default_core_config(_settings.get_db_from_env(args.database))
    _settings.store_configuration(conf, path)
    print(f"A new config file has been created as {path!r}.")
    if database.is_in_memory(conf.database.connection):
        print(
            "The in-memory sqlite3 database is used by default. It does not persist any data. "
            "Use the '--database' option to configure a persistent database.",
            file=sys.stderr
        )
    return 0


def migrate_database(args: argparse.Namespace) -> int:
    config = _settings.Settings()
    database.upgrade_schema(config.database.connection, args.revision)
    print(f"Successfully upgraded the database to revision {args.revision!r}.")
    return 0


def seed_database(args: argparse.Namespace) -> int:
    config = _settings.Settings()
    try:
        count = seeding.seed_posts(_get_store(config), args.file or config.database.seed_file)
    except SeedDataError as exc:
        print(exc, file=sys.stderr)
        return 1
    if count == 0:
        print("The database already contains posts. Nothing has been changed.")
    else:
        print(f"Successfully inserted {count} posts.")
    return 0


def print_table(objs: List[dict], keys: Optional[List[str]] = None):
    info = OrderedDict()
    if keys:
        for k in keys:
            info[k] = len(k)
    for obj in objs:
        for key in obj:
            if keys and key not in keys:
                continue
            if key not in info:
                info[key] = len(key)
            info[key] = max(len(str(obj.get(key))), info.get(key))
    print(" | ".join([f"{k:<{info[k]}}" for k in info]))
    print("-+-".join(["-" * info[k] for k in info]))
    for obj in objs:
        print(" | ".join([f"{obj[k]!s:<{info[k]}}" for k in info]))


def show_posts(args: argparse.Namespace) -> int:
    config = _settings.Settings()
    posts = _get_store(config).list_all()

    if args.json:
        print(json.dumps([post.model_dump() for post in posts], indent=args.indent))
        return 0
    print_table([post.model_dump() for post in posts], ["id", "owner_id", "version", "title"])
    return 0


def clear_posts(args: argparse.Namespace) -> int:
    if not args.yes and input("Delete all posts? [y/N] ").strip().lower() not in ("y", "yes"):
        print("Aborted. No post has been deleted.")
        return 1

    config = _settings.Settings()
    try:
        count = _get_store(config).delete_all()
    except StoreError as exc:
        print(exc, file=sys.stderr)
        return 1
    print(f"Successfully deleted {count} posts.")
    return 0


def handle_posts(args: argparse.Namespace) -> int:
    return {
        "show": show_posts,
        "clear": clear_posts
    }[args.action](args)


def needs_import_string(args: argparse.Namespace) -> bool:
    return args.reload or (args.workers or 1) > 1


def export_settings(args: argparse.Namespace, environ: Optional[MutableMapping[str, str]] = None) -> MutableMapping[str, str]:
    """
    Store the settings given on the command line in the environment of the server processes

    Reloading or multiple workers make uvicorn import the app in new processes,
    which create their settings from the config file and environment only.
    """

    if environ is None:
        environ = os.environ
    path = _settings.find_config_file()
    if path is not None:
        environ["CONFIG_PATH"] = os.path.abspath(path)
    if args.debug_sql:
        environ["DATABASE__DEBUG_SQL"] = "true"
    return environ


def run_server(args: argparse.Namespace) -> int:
    if args.debug:
        print("Do not start the server this way during production!", file=sys.stderr)

    _settings.CONFIG_PATHS.insert(0, args.config)
    try:
        settings = _settings.Settings()
    except ValueError:
        print("Ensure that the configuration file is valid. Please correct any errors.", file=sys.stderr)
        raise

    if args.debug:
        settings.logging.root["level"] = "DEBUG"
        for handler in settings.logging.handlers:
            settings.logging.handlers[handler]["level"] = "DEBUG"
    if args.debug_sql:
        settings.database.debug_sql = args.debug_sql

    port = args.port
    if port is None:
        port = settings.server.port
    host = args.host
    if host is None:
        host = settings.server.host

    if needs_import_string(args):
        export_settings(args)
        target = SERVER_APP_IMPORT_STRING
    else:
        target = create_app(settings=settings)

    logging.getLogger("posts_core").info(f"Server running at host {host} port {port}")
    uvicorn.run(
        target,
        port=port,
        host=host,
        reload=args.reload,
        workers=args.workers,
        log_level="debug" if args.debug else "info",
        log_config=settings.logging.model_dump(),
        access_log=not args.no_access_log,
        proxy_headers=True,
        root_path=args.root_path
    )
    return 0


if __name__ == '__main__':
    program_name = sys.argv[0] if not sys.argv[0].endswith("__main__.py") else "posts_core"
    namespace = get_parser(program_name).parse_args(sys.argv[1:])

    command_functions = {
        "init": init_project,
        "migrate": migrate_database,
        "seed": seed_database,
        "posts": handle_posts,
        "run": run_server
    }
    exit(command_functions[namespace.command](namespace))
