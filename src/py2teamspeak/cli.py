"""
Command-Line Interface - Argument Parsing and Entry Point

Sends one ServerQuery command and prints the reply. With ``--listen`` the
connection stays open afterwards and notifications are printed as they
arrive.

Usage:
    python -m py2teamspeak --host 127.0.0.1 version
    python -m py2teamspeak --config query.yaml clientlist -uid -away
    python -m py2teamspeak --listen 60 servernotifyregister event=server
"""

import sys
import time
import argparse
import logging
from typing import Any, Dict, List, Optional, Tuple

from py2teamspeak.client import QueryClient
from py2teamspeak.core.errors import QueryError, TransportError
from py2teamspeak.core.query_protocol import records_of
from py2teamspeak.models.command import PendingCommand
from py2teamspeak.services.configuration_service import ConfigurationService


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: List of arguments to parse. If None, uses sys.argv[1:]

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="py2teamspeak",
        description="TeamSpeak ServerQuery command line client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Tokens after the command:
  -flag          option, sent as -flag
  key=value      parameter; repeat a key to send key=a|key=b

Examples:
  %(prog)s version
  %(prog)s --host 10.0.0.5 --port 10011 serverlist -uid
  %(prog)s --listen 30 servernotifyregister event=textserver
        """
    )

    parser.add_argument("--config", type=str, default=None,
                        help="YAML configuration file")
    parser.add_argument("--host", type=str, default=None,
                        help="Query interface host (default: localhost)")
    parser.add_argument("--port", type=int, default=None,
                        help="Query interface port (default: 10011)")
    parser.add_argument("--timeout", type=float, default=10.0,
                        help="Seconds to wait for the reply (default: 10)")
    parser.add_argument("--listen", type=float, default=0.0,
                        help="Keep the connection open this many seconds and print notifications")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (default: from config, else WARNING)"
    )
    parser.add_argument("command", help="Command name, e.g. version")
    parser.add_argument("tokens", nargs=argparse.REMAINDER,
                        help="Options (-flag) and parameters (key=value)")

    return parser.parse_args(args)


def parse_tokens(tokens: List[str]) -> Tuple[List[str], Dict[str, Any]]:
    """Split CLI tokens into options and parameters.

    Example:
        >>> parse_tokens(["-uid", "clid=1", "clid=2", "reasonmsg=bye"])
        (['uid'], {'clid': ['1', '2'], 'reasonmsg': 'bye'})
    """
    options: List[str] = []
    parameters: Dict[str, Any] = {}

    for token in tokens:
        if token.startswith("-") and len(token) > 1:
            options.append(token[1:])
            continue

        key, sep, value = token.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected -option or key=value, got {token!r}")

        if key in parameters:
            existing = parameters[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                parameters[key] = [existing, value]
        else:
            parameters[key] = value

    return options, parameters


def setup_logging(level: str):
    """Configure application logging.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def format_record(record: Dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in record.items())


def print_outcome(command: PendingCommand) -> int:
    """Print a resolved command. Returns the exit code."""
    if command.error is not None:
        print(f"Error {command.error.error_id}: {command.error.message}")
        return 1

    result = command.result
    if result is not None and result.has_data:
        for record in records_of(result.data):
            print(format_record(record))
    else:
        print("ok")
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 = success, 1 = error)
    """
    parsed_args = parse_args(args)

    service = ConfigurationService(parsed_args.config)
    try:
        service.load()
        level = parsed_args.log_level or (service.get_log_level() if parsed_args.config else "WARNING")
        setup_logging(level)
        config = service.get_connection_config(host=parsed_args.host, port=parsed_args.port)
        options, parameters = parse_tokens(parsed_args.tokens)
    except (QueryError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    logger = logging.getLogger(__name__)
    logger.debug(f"Connecting to {config.host}:{config.port}")

    client = QueryClient(config=config)
    if parsed_args.listen > 0:
        client.on('notify', lambda name, data: print(
            f"[{name}] " + " | ".join(format_record(r) for r in records_of(data))))
    client.on('error', lambda error: logger.error(error.format_log_message()))

    try:
        client.connect()
    except TransportError as e:
        print(f"Error: {e.message}")
        return 1

    try:
        command = client.execute(parsed_args.command, options=options, parameters=parameters)
        if not command.wait(parsed_args.timeout):
            print(f"Error: no reply to '{parsed_args.command}' within {parsed_args.timeout}s")
            return 1

        exit_code = print_outcome(command)

        if parsed_args.listen > 0 and exit_code == 0:
            time.sleep(parsed_args.listen)

        return exit_code
    except KeyboardInterrupt:
        return 130
    finally:
        client.disconnect()


if __name__ == "__main__":
    sys.exit(main())
