import argparse
import logging
import sys

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import (
    Settings,
    get_email_adapter,
    get_rules,
    get_settings,
    get_subscription_config,
    get_subscription_repo,
    get_template_renderer,
    get_unit_of_work_factory,
)
from src.app_shell.config import configure_logging
from src.components.subscriptions import resend_confirmation
from src.domain.errors import SubscriptionServiceError, format_error_chain

logger = logging.getLogger("cli")


def handle_migrate(settings: Settings) -> None:
    rules = get_rules(settings)
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    try:
        applied = SQLiteMigrator(settings.db_path(rules), settings.migrations_dir).run_migrations()
    except SubscriptionServiceError as e:
        logger.error("Migration failed:\n%s", format_error_chain(e))
        sys.exit(1)
    print(f"Applied {len(applied)} migration(s).")


def handle_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("src.api.main:app", host=args.host, port=args.port, workers=args.workers)


def handle_resend(settings: Settings, args: argparse.Namespace) -> None:
    rules = get_rules(settings)
    try:
        result = resend_confirmation(
            args.email,
            repo=get_subscription_repo(settings, rules),
            uow_factory=get_unit_of_work_factory(settings, rules),
            email_sender=get_email_adapter(settings),
            renderer=get_template_renderer(settings, rules),
            config=get_subscription_config(settings, rules),
        )
    except SubscriptionServiceError as e:
        logger.error("Resend failed:\n%s", format_error_chain(e))
        sys.exit(1)

    if result is None:
        print(f"{args.email} is already confirmed; nothing sent.")
    else:
        print(f"Confirmation email re-sent to {args.email}.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Newsletter Subscriptions CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--workers", type=int, default=1)

    # resend
    resend_parser = subparsers.add_parser(
        "resend", help="Re-send the confirmation email to a pending subscriber"
    )
    resend_parser.add_argument("email", help="Subscriber email address")

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)

    if args.command == "migrate":
        handle_migrate(settings)
    elif args.command == "serve":
        handle_serve(args)
    elif args.command == "resend":
        handle_resend(settings, args)


if __name__ == "__main__":
    main()
