"""Server lifecycle commands for the asa-host CLI."""

import sys

from asa_host.cli_helpers import container_name, fail, format_size, get_runtime, get_settings
from asa_host.common.constants import DEFAULT_CONTAINER_NAME, DEFAULT_SERVER_FILTER, ExitCodes
from asa_host.common.errors import AsaHostError
from asa_host.common.logging_config import get_logger
from asa_host.core.server import ServerManager


class ServerCommand:
    """Handles start/stop/restart/status/update/logs/rcon/list."""

    @staticmethod
    def add_parser(subparsers) -> None:
        """Add server lifecycle parsers to subparsers."""
        simple = (
            ('start', 'Start the server container'),
            ('stop', 'Stop the server container gracefully'),
            ('restart', 'Restart the server container'),
            ('status', 'Show server status'),
            ('update', 'Update server files and restart'),
        )
        for action, help_text in simple:
            parser = subparsers.add_parser(action, help=help_text)
            parser.add_argument('name', nargs='?', default=None,
                                help=f'Container name (default: {DEFAULT_CONTAINER_NAME})')
            parser.set_defaults(func=ServerCommand.execute, server_action=action)

        logs_parser = subparsers.add_parser('logs', help='Show server logs')
        logs_parser.add_argument('name', nargs='?', default=None,
                                 help=f'Container name (default: {DEFAULT_CONTAINER_NAME})')
        logs_parser.add_argument('--no-follow', dest='follow', action='store_false',
                                 help='Print the current log and exit')
        logs_parser.add_argument('--tail', type=int, default=None, help='Number of lines to show')
        logs_parser.set_defaults(func=ServerCommand.execute, server_action='logs')

        rcon_parser = subparsers.add_parser('rcon', help='Execute an RCON command in a server container')
        rcon_parser.add_argument('name', help='Container name')
        rcon_parser.add_argument('rcon_command', nargs='*', help='RCON command to execute')
        rcon_parser.set_defaults(func=ServerCommand.execute, server_action='rcon')

        list_parser = subparsers.add_parser('list', help='List all ASA server containers')
        list_parser.add_argument('--filter', dest='name_filter', default=DEFAULT_SERVER_FILTER,
                                 help=f'Container name filter (default: {DEFAULT_SERVER_FILTER})')
        list_parser.set_defaults(func=ServerCommand.execute, server_action='list')

    @staticmethod
    def execute(args) -> None:
        """Execute a server lifecycle command."""
        settings = get_settings(args)
        manager = ServerManager(get_runtime(args), get_logger("asa_host.server"), settings.asa_ctrl_bin)
        action = args.server_action
        try:
            if action == 'start':
                if not manager.start(container_name(args)):
                    sys.exit(ExitCodes.GENERAL_ERROR)
            elif action == 'stop':
                manager.stop(container_name(args))
            elif action == 'restart':
                if not manager.restart(container_name(args)):
                    sys.exit(ExitCodes.GENERAL_ERROR)
            elif action == 'status':
                ServerCommand._print_status(manager, container_name(args))
            elif action == 'update':
                if not manager.update(container_name(args)):
                    sys.exit(ExitCodes.GENERAL_ERROR)
            elif action == 'logs':
                for line in manager.logs(container_name(args), follow=args.follow, tail=args.tail):
                    print(line, end='')
            elif action == 'rcon':
                print(manager.rcon(args.name, ' '.join(args.rcon_command)))
            elif action == 'list':
                ServerCommand._print_list(manager, args.name_filter)
        except AsaHostError as exc:
            fail(exc)
        except KeyboardInterrupt:
            sys.exit(ExitCodes.OK)

    @staticmethod
    def _print_status(manager: ServerManager, name: str) -> None:
        status = manager.status(name)
        print(f"Status for: {status.name}")
        print()
        print(f"Container Status: {status.status}")
        print(f"Running: {'true' if status.running else 'false'}")
        if not status.running:
            return
        print(f"Started: {status.started_at}")
        if status.usage is not None:
            usage = status.usage
            print()
            print("Resource Usage:")
            print(f"  CPU: {usage.cpu_percent:.2f}%")
            print(f"  Memory: {format_size(usage.memory_usage)} / {format_size(usage.memory_limit)}")
            print(f"  Network: {format_size(usage.network_rx)} / {format_size(usage.network_tx)}")
        if status.players is not None:
            print()
            print(status.players.rstrip())

    @staticmethod
    def _print_list(manager: ServerManager, name_filter: str) -> None:
        servers = manager.list_servers(name_filter)
        print(f"{'NAMES':<30} {'STATUS':<15} PORTS")
        for server in servers:
            print(f"{server.name:<30} {server.status:<15} {', '.join(server.ports)}")
