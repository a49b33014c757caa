"""Main CLI entry point for the App Store Connect CLI.

Handles argument parsing, command routing, and output coordination.
"""

import sys
import json
import platform
import argparse

from .client import AppStoreConnectClient, AppStoreConnectError, TokenSigner
from .commands import (
    AppCommands, BuildCommands, TestFlightCommands,
    ProvisioningCommands, AuthCommands, RawCommands,
)
from .formatters import JsonFormatter, HumanFormatter
from .settings import check_settings, load_settings
from .utils.safety import confirm_destructive
from . import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the asc CLI."""

    parser = argparse.ArgumentParser(
        prog='asc',
        description='App Store Connect CLI - apps, builds, TestFlight and provisioning',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Credentials are read from the environment:
  export ASC_ISSUER_ID="xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
  export ASC_KEY_ID="XXXXXXXXXX"
  export ASC_PRIVATE_KEY_PATH="/path/to/AuthKey_XXXXXXXXXX.p8"

Examples:
  # Check configuration (no API call)
  asc validate

  # Mint a token for use with curl
  asc auth token --verify

  # Apps and builds
  asc apps list --limit 20
  asc apps versions 1234567890
  asc builds list --app 1234567890

  # TestFlight
  asc beta-groups create --app 1234567890 --name "QA"
  asc beta-testers invite --email tester@example.com --group <GROUP_ID>
  asc beta-groups remove-tester <GROUP_ID> <TESTER_ID> --dry-run

  # Anything else
  asc request GET /v1/apps -p limit=5 -p "fields[apps]=name,bundleId"
"""
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--human', action='store_true',
                        help='Human-readable output instead of JSON')
    parser.add_argument('--verbose', action='store_true',
                        help='Verbose logging (show HTTP requests)')

    subparsers = parser.add_subparsers(dest='resource', help='Resource to manage')

    # ── version / validate ──────────────────────────────────────
    subparsers.add_parser('version', help='Print version information')
    subparsers.add_parser('validate',
        help='Validate configuration and private key (no API call)')

    # ── auth ────────────────────────────────────────────────────
    auth_parser = subparsers.add_parser('auth', help='Token operations')
    auth_sub = auth_parser.add_subparsers(dest='action')

    token_parser = auth_sub.add_parser('token', help='Mint a bearer token')
    token_parser.add_argument('--verify', action='store_true',
        help='Verify the signature with the public key')

    # ── request ─────────────────────────────────────────────────
    req_parser = subparsers.add_parser('request', help='Send a raw API request')
    req_parser.add_argument('method', choices=['GET', 'POST', 'PATCH', 'DELETE'],
                            type=str.upper, help='HTTP method')
    req_parser.add_argument('path', help='API path, e.g. /v1/apps')
    req_parser.add_argument('-p', '--param', action='append', default=[],
                            metavar='NAME=VALUE', help='Query parameter (repeatable)')
    req_parser.add_argument('--data', help='JSON request body')

    # ── apps ────────────────────────────────────────────────────
    apps_parser = subparsers.add_parser('apps', help='App operations')
    apps_sub = apps_parser.add_subparsers(dest='action')

    apps_list = apps_sub.add_parser('list', help='List apps')
    apps_list.add_argument('--limit', type=int, default=0, help='Max results')
    apps_list.add_argument('--bundle-id', help='Filter by bundle identifier')

    apps_get = apps_sub.add_parser('get', help='Show an app')
    apps_get.add_argument('app_id', help='App ID')

    apps_versions = apps_sub.add_parser('versions', help='List App Store versions')
    apps_versions.add_argument('app_id', help='App ID')
    apps_versions.add_argument('--limit', type=int, default=0, help='Max results')

    # ── builds ──────────────────────────────────────────────────
    builds_parser = subparsers.add_parser('builds', help='Build operations')
    builds_sub = builds_parser.add_subparsers(dest='action')

    builds_list = builds_sub.add_parser('list', help='List builds')
    builds_list.add_argument('--app', help='Filter by app ID')
    builds_list.add_argument('--limit', type=int, default=0, help='Max results')

    builds_get = builds_sub.add_parser('get', help='Show a build')
    builds_get.add_argument('build_id', help='Build ID')

    # ── beta-groups ─────────────────────────────────────────────
    groups_parser = subparsers.add_parser('beta-groups', help='TestFlight beta groups')
    groups_sub = groups_parser.add_subparsers(dest='action')

    groups_list = groups_sub.add_parser('list', help='List beta groups')
    groups_list.add_argument('--app', help='Filter by app ID')
    groups_list.add_argument('--limit', type=int, default=0, help='Max results')

    groups_create = groups_sub.add_parser('create', help='Create a beta group')
    groups_create.add_argument('--app', required=True, help='App ID')
    groups_create.add_argument('--name', required=True, help='Group name')
    groups_create.add_argument('--public-link', action='store_true',
                               help='Enable the public TestFlight link')
    groups_create.add_argument('--public-link-limit', type=int, default=0,
                               help='Max testers joining via the public link')
    groups_create.add_argument('--feedback', action='store_true',
                               help='Enable tester feedback')

    groups_delete = groups_sub.add_parser('delete', help='Delete a beta group')
    groups_delete.add_argument('group_id', help='Beta group ID')
    _add_destructive_flags(groups_delete)

    groups_add = groups_sub.add_parser('add-tester', help='Add a tester to a group')
    groups_add.add_argument('group_id', help='Beta group ID')
    groups_add.add_argument('tester_id', help='Beta tester ID')

    groups_remove = groups_sub.add_parser('remove-tester',
                                          help='Remove a tester from a group')
    groups_remove.add_argument('group_id', help='Beta group ID')
    groups_remove.add_argument('tester_id', help='Beta tester ID')
    _add_destructive_flags(groups_remove)

    # ── beta-testers ────────────────────────────────────────────
    testers_parser = subparsers.add_parser('beta-testers', help='TestFlight beta testers')
    testers_sub = testers_parser.add_subparsers(dest='action')

    testers_list = testers_sub.add_parser('list', help='List beta testers')
    testers_list.add_argument('--group', help='Filter by beta group ID')
    testers_list.add_argument('--limit', type=int, default=0, help='Max results')

    testers_invite = testers_sub.add_parser('invite', help='Invite a beta tester')
    testers_invite.add_argument('--email', required=True, help='Tester email')
    testers_invite.add_argument('--first-name', help='First name')
    testers_invite.add_argument('--last-name', help='Last name')
    testers_invite.add_argument('--group', action='append', default=[],
                                help='Beta group ID to join (repeatable)')

    testers_delete = testers_sub.add_parser('delete', help='Delete a beta tester')
    testers_delete.add_argument('tester_id', help='Beta tester ID')
    _add_destructive_flags(testers_delete)

    # ── provisioning ────────────────────────────────────────────
    bundle_parser = subparsers.add_parser('bundle-ids', help='Bundle ID operations')
    bundle_sub = bundle_parser.add_subparsers(dest='action')

    bundle_list = bundle_sub.add_parser('list', help='List bundle IDs')
    bundle_list.add_argument('--limit', type=int, default=0, help='Max results')
    bundle_list.add_argument('--identifier', help='Filter by identifier, e.g. com.example.app')

    bundle_get = bundle_sub.add_parser('get', help='Show a bundle ID')
    bundle_get.add_argument('bundle_id_id', help='Bundle ID resource ID')

    devices_parser = subparsers.add_parser('devices', help='Device operations')
    devices_sub = devices_parser.add_subparsers(dest='action')

    devices_list = devices_sub.add_parser('list', help='List devices')
    devices_list.add_argument('--limit', type=int, default=0, help='Max results')
    devices_list.add_argument('--platform', choices=['IOS', 'MAC_OS'], help='Filter by platform')

    devices_register = devices_sub.add_parser('register', help='Register a device')
    devices_register.add_argument('--name', required=True, help='Device name')
    devices_register.add_argument('--udid', required=True, help='Device UDID')
    devices_register.add_argument('--platform', choices=['IOS', 'MAC_OS'], default='IOS',
                                  help='Device platform (default: IOS)')

    certs_parser = subparsers.add_parser('certificates', help='Certificate operations')
    certs_sub = certs_parser.add_subparsers(dest='action')

    certs_list = certs_sub.add_parser('list', help='List certificates')
    certs_list.add_argument('--limit', type=int, default=0, help='Max results')
    certs_list.add_argument('--type', dest='certificate_type',
                            help='Filter by type, e.g. IOS_DISTRIBUTION')

    profiles_parser = subparsers.add_parser('profiles', help='Provisioning profile operations')
    profiles_sub = profiles_parser.add_subparsers(dest='action')

    profiles_list = profiles_sub.add_parser('list', help='List profiles')
    profiles_list.add_argument('--limit', type=int, default=0, help='Max results')

    profiles_get = profiles_sub.add_parser('get', help='Show a profile')
    profiles_get.add_argument('profile_id', help='Profile ID')
    profiles_get.add_argument('--include-content', action='store_true',
                              help='Include the base64 profile content')

    return parser


def _add_destructive_flags(parser):
    parser.add_argument('--yes', action='store_true',
                        help='Skip the confirmation prompt')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show the request without sending it')


def _parse_params(pairs: list) -> list:
    """Turn ['name=value', ...] into [('name', 'value'), ...]."""
    params = []
    for pair in pairs:
        name, sep, value = pair.partition('=')
        if not sep or not name:
            raise AppStoreConnectError(
                f"Invalid parameter {pair!r}, expected NAME=VALUE"
            )
        params.append((name, value))
    return params


def _confirmed(args, action: str, target: str) -> bool:
    return args.yes or args.dry_run or confirm_destructive(action, target)


def run_validate(formatter) -> int:
    """Check configuration and that the private key parses."""
    checks = check_settings()
    result = {'checks': checks, 'valid': False}

    if all(c['ok'] for c in checks):
        try:
            settings = load_settings()
            signer = TokenSigner.from_file(
                settings.issuer_id, settings.key_id, settings.private_key_path
            )
            token, _ = signer.mint()
            result['checks'].append({
                'variable': 'private key',
                'ok': signer.verify(token),
                'detail': 'PKCS8 EC P-256 key loaded, test token signed',
            })
        except AppStoreConnectError as e:
            result['checks'].append({'variable': 'private key', 'ok': False,
                                     'detail': str(e)})

    result['valid'] = all(c['ok'] for c in result['checks'])
    formatter.output_result(result)
    return 0 if result['valid'] else 1


def main(argv=None):
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv

    # Pre-parse global flags so they work anywhere in the command line
    global_parser = argparse.ArgumentParser(add_help=False)
    global_parser.add_argument('--human', action='store_true')
    global_parser.add_argument('--verbose', action='store_true')
    global_args, remaining = global_parser.parse_known_args(argv)

    parser = create_parser()
    args = parser.parse_args(remaining)

    # Merge global flags into args
    args.human = global_args.human
    args.verbose = global_args.verbose

    if not args.resource:
        parser.print_help()
        sys.exit(0)

    formatter = HumanFormatter() if args.human else JsonFormatter()

    try:
        # ── commands that need no API client ────────────────────
        if args.resource == 'version':
            formatter.output_result({
                'version': __version__,
                'python': platform.python_version(),
                'platform': f"{sys.platform}/{platform.machine()}",
            })
            sys.exit(0)

        if args.resource == 'validate':
            sys.exit(run_validate(formatter))

        settings = load_settings()

        if args.resource == 'auth':
            if args.action == 'token':
                signer = TokenSigner.from_file(
                    settings.issuer_id,
                    settings.key_id,
                    settings.private_key_path,
                    token_duration=settings.token_duration,
                )
                formatter.output_result(AuthCommands(signer).mint_token(verify=args.verify))
            else:
                parser.parse_args(['auth', '--help'])
            sys.exit(0)

        # ── All other commands require a client ─────────────────
        client = AppStoreConnectClient.from_settings(settings, verbose=args.verbose)

        if args.resource == 'request':
            body = None
            if args.data:
                try:
                    body = json.loads(args.data)
                except ValueError as e:
                    raise AppStoreConnectError(f"--data is not valid JSON: {e}") from e
            result = RawCommands(client).request(
                args.method, args.path, params=_parse_params(args.param), body=body
            )
            formatter.output_result(result)

        elif args.resource == 'apps':
            cmds = AppCommands(client)
            if args.action == 'list':
                formatter.output_result(cmds.list_apps(limit=args.limit,
                                                       bundle_id=args.bundle_id))
            elif args.action == 'get':
                formatter.output_result(cmds.get_app(args.app_id))
            elif args.action == 'versions':
                formatter.output_result(cmds.list_versions(args.app_id, limit=args.limit))
            else:
                parser.parse_args(['apps', '--help'])

        elif args.resource == 'builds':
            cmds = BuildCommands(client)
            if args.action == 'list':
                formatter.output_result(cmds.list_builds(app_id=args.app, limit=args.limit))
            elif args.action == 'get':
                formatter.output_result(cmds.get_build(args.build_id))
            else:
                parser.parse_args(['builds', '--help'])

        elif args.resource == 'beta-groups':
            cmds = TestFlightCommands(client)
            if args.action == 'list':
                formatter.output_result(cmds.list_groups(app_id=args.app, limit=args.limit))
            elif args.action == 'create':
                formatter.output_result(cmds.create_group(
                    args.app,
                    args.name,
                    public_link=args.public_link,
                    public_link_limit=args.public_link_limit,
                    feedback=args.feedback,
                ))
            elif args.action == 'delete':
                if not _confirmed(args, 'Delete beta group', args.group_id):
                    formatter.output_result({'status': 'cancelled'})
                    sys.exit(1)
                formatter.output_result(cmds.delete_group(args.group_id,
                                                          dry_run=args.dry_run))
            elif args.action == 'add-tester':
                formatter.output_result(cmds.add_tester(args.group_id, args.tester_id))
            elif args.action == 'remove-tester':
                target = f"tester {args.tester_id} from group {args.group_id}"
                if not _confirmed(args, 'Remove beta tester', target):
                    formatter.output_result({'status': 'cancelled'})
                    sys.exit(1)
                formatter.output_result(cmds.remove_tester(args.group_id, args.tester_id,
                                                           dry_run=args.dry_run))
            else:
                parser.parse_args(['beta-groups', '--help'])

        elif args.resource == 'beta-testers':
            cmds = TestFlightCommands(client)
            if args.action == 'list':
                formatter.output_result(cmds.list_testers(group_id=args.group,
                                                          limit=args.limit))
            elif args.action == 'invite':
                formatter.output_result(cmds.invite_tester(
                    args.email,
                    first_name=args.first_name,
                    last_name=args.last_name,
                    group_ids=args.group,
                ))
            elif args.action == 'delete':
                if not _confirmed(args, 'Delete beta tester', args.tester_id):
                    formatter.output_result({'status': 'cancelled'})
                    sys.exit(1)
                formatter.output_result(cmds.delete_tester(args.tester_id,
                                                           dry_run=args.dry_run))
            else:
                parser.parse_args(['beta-testers', '--help'])

        elif args.resource == 'bundle-ids':
            cmds = ProvisioningCommands(client)
            if args.action == 'list':
                formatter.output_result(cmds.list_bundle_ids(limit=args.limit,
                                                             identifier=args.identifier))
            elif args.action == 'get':
                formatter.output_result(cmds.get_bundle_id(args.bundle_id_id))
            else:
                parser.parse_args(['bundle-ids', '--help'])

        elif args.resource == 'devices':
            cmds = ProvisioningCommands(client)
            if args.action == 'list':
                formatter.output_result(cmds.list_devices(limit=args.limit,
                                                          platform=args.platform))
            elif args.action == 'register':
                formatter.output_result(cmds.register_device(args.name, args.udid,
                                                             platform=args.platform))
            else:
                parser.parse_args(['devices', '--help'])

        elif args.resource == 'certificates':
            cmds = ProvisioningCommands(client)
            if args.action == 'list':
                formatter.output_result(cmds.list_certificates(
                    limit=args.limit, certificate_type=args.certificate_type))
            else:
                parser.parse_args(['certificates', '--help'])

        elif args.resource == 'profiles':
            cmds = ProvisioningCommands(client)
            if args.action == 'list':
                formatter.output_result(cmds.list_profiles(limit=args.limit))
            elif args.action == 'get':
                formatter.output_result(cmds.get_profile(
                    args.profile_id, include_content=args.include_content))
            else:
                parser.parse_args(['profiles', '--help'])

        else:
            parser.print_help()

    except AppStoreConnectError as e:
        formatter.output_error(e)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        formatter.output_error(e)
        sys.exit(1)


if __name__ == '__main__':
    main()
