"""Backup command handling for the asa-host CLI."""

import sys

from asa_host.cli_helpers import (
    container_name,
    fail,
    format_size,
    get_runtime,
    get_settings,
    is_whole_number,
)
from asa_host.common.constants import DEFAULT_CONTAINER_NAME, ExitCodes
from asa_host.common.errors import AsaHostError, InvalidArgumentError
from asa_host.common.logging_config import get_logger
from asa_host.core.backup import BackupManager


class BackupCommand:
    """Handles backup create/restore/list/cleanup."""

    @staticmethod
    def add_parser(subparsers) -> None:
        """Add backup command parser to subparsers."""
        parser = subparsers.add_parser('backup', help='Backup management for server volumes')
        backup_subparsers = parser.add_subparsers(dest='backup_action', help='Backup actions')

        create_parser = backup_subparsers.add_parser('create', help='Create a new backup')
        create_parser.add_argument('name', nargs='?', default=None,
                                   help=f'Container name (default: {DEFAULT_CONTAINER_NAME})')
        create_parser.add_argument('label', nargs='?', default=None, help='Optional backup label')

        restore_parser = backup_subparsers.add_parser('restore', help='Restore from a backup')
        restore_parser.add_argument('name', help='Container name')
        restore_parser.add_argument('backup_file', help='Backup archive (relative to the backup directory)')
        restore_parser.add_argument('--yes', action='store_true', help='Do not ask for confirmation')

        list_parser = backup_subparsers.add_parser('list', help='List available backups')
        list_parser.add_argument('name', nargs='?', default=None,
                                 help=f'Container name (default: {DEFAULT_CONTAINER_NAME})')

        cleanup_parser = backup_subparsers.add_parser('cleanup', help='Clean up old backups')
        cleanup_parser.add_argument('name', nargs='?', default=None,
                                    help=f'Container name (default: {DEFAULT_CONTAINER_NAME})')
        cleanup_parser.add_argument('keep', nargs='?', default=None,
                                    help='Number of most recent backups to keep')

        parser.set_defaults(func=BackupCommand.execute)

    @staticmethod
    def execute(args) -> None:
        """Execute a backup command."""
        settings = get_settings(args)
        manager = BackupManager(get_runtime(args), settings, get_logger("asa_host.backup"))
        try:
            if args.backup_action == 'create':
                manager.create(container_name(args), args.label)
            elif args.backup_action == 'restore':
                BackupCommand._restore(manager, args)
            elif args.backup_action == 'list':
                BackupCommand._list(manager, container_name(args))
            elif args.backup_action == 'cleanup':
                keep = args.keep if args.keep is not None else settings.max_backups
                if not is_whole_number(keep):
                    raise InvalidArgumentError(
                        f"Invalid keep count: {keep}. Keep count must be a positive integer"
                    )
                manager.cleanup(container_name(args), int(keep))
            else:
                print("Please specify a backup action: create, restore, list, or cleanup")
                sys.exit(ExitCodes.OK)
        except AsaHostError as exc:
            fail(exc)

    @staticmethod
    def _restore(manager: BackupManager, args) -> None:
        archive = manager.resolve(args.backup_file)
        if not args.yes:
            print("=========================================")
            print("WARNING: This will REPLACE all server data!")
            print(f"Container: {args.name}")
            print(f"Backup: {archive}")
            print("=========================================")
            reply = input("Are you sure you want to continue? (yes/no): ")
            if reply.strip().lower() != 'yes':
                print("Restore cancelled")
                return
        manager.restore(args.name, str(archive))

    @staticmethod
    def _list(manager: BackupManager, name: str) -> None:
        backups = manager.list(name)
        print(f"Available backups for: {name}")
        print()
        if not backups:
            print("No backups found")
            return
        print(f"{'Backup File':<50} {'Size':<15} {'Date':<20}")
        print(f"{'----------':<50} {'----':<15} {'----':<20}")
        for backup in backups:
            print(
                f"{backup.name:<50} {format_size(backup.size_bytes):<15} "
                f"{backup.modified.strftime('%Y-%m-%d %H:%M:%S'):<20}"
            )
            if backup.label:
                print(f"  └─ Label: {backup.label}")
