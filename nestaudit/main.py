#!/usr/bin/env python3
"""
nestaudit - Active Directory Group Nesting Audit
================================================

Command-line interface for membership closure queries.

Usage:
    # Every group jdoe belongs to, directly or through nesting
    python -m nestaudit memberof jdoe --snapshot users.json groups.json

    # Every member of Domain Admins, against a live domain controller
    python -m nestaudit members "Domain Admins" -u auditor -p Password123 -d corp.local -s 192.168.1.100

Options:
    --snapshot          BloodHound/SharpHound JSON or zip files
    --username, -u      Domain username
    --password, -p      Domain password
    --domain, -d        Domain name (e.g., corp.local)
    --server, -s        Domain controller IP address
    --inactive-days     Inactivity threshold in days (default: 90)
    --include-inactive  Keep inactive users in member listings
    --no-nested         Do not expand nested groups
    --max-depth         Stop expanding below this nesting depth
    --max-nodes         Stop after this many distinct objects
    --view              summary, tree or detailed (default: summary)
    --output, -o        Output directory (default: ./output)
    --verbose, -v       Verbose output

Environment Variables:
    NESTAUDIT_LDAP_PASSWORD   Bind password when -p is not given

Exit Codes:
    0   Success
    1   Fatal error (bad input, directory unreachable)
    2   Root identity not found or ambiguous
"""

import argparse
import sys

from . import __version__
from .directory.base import NestAuditError, ObjectNotFoundError
from .integration.bridge import run_audit
from .reporting.report_builder import VIEWS

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the memberof / members sub-commands."""
    common = argparse.ArgumentParser(add_help=False)

    source_group = common.add_argument_group("Directory Source")
    source_group.add_argument(
        "--snapshot",
        nargs="+",
        metavar="FILE",
        help="BloodHound/SharpHound JSON or zip files to query instead of LDAP"
    )
    source_group.add_argument(
        "-u", "--username",
        help="Domain username for LDAP authentication"
    )
    source_group.add_argument(
        "-p", "--password",
        help="Domain password (default: $NESTAUDIT_LDAP_PASSWORD)"
    )
    source_group.add_argument(
        "-d", "--domain",
        help="Domain name (e.g., corp.local)"
    )
    source_group.add_argument(
        "-s", "--server",
        help="Domain controller IP address or hostname"
    )
    source_group.add_argument(
        "--ssl",
        action="store_true",
        help="Use LDAPS (port 636)"
    )

    traversal_group = common.add_argument_group("Traversal Options")
    traversal_group.add_argument(
        "--inactive-days",
        type=int,
        default=90,
        help="Users without activity for longer than this are inactive (default: 90)"
    )
    traversal_group.add_argument(
        "--include-inactive",
        action="store_true",
        help="Keep inactive users in member listings (flagged)"
    )
    traversal_group.add_argument(
        "--no-nested",
        action="store_true",
        help="List direct members only, without expanding nested groups"
    )
    traversal_group.add_argument(
        "--max-depth",
        type=int,
        help="Do not expand groups nested deeper than this"
    )
    traversal_group.add_argument(
        "--max-nodes",
        type=int,
        help="Stop after this many distinct objects"
    )

    output_group = common.add_argument_group("Output")
    output_group.add_argument(
        "--view",
        choices=VIEWS,
        default="summary",
        help="Text view to print (default: summary)"
    )
    output_group.add_argument(
        "-o", "--output",
        default="output",
        help="Output directory for results (default: ./output)"
    )
    output_group.add_argument(
        "--no-html",
        action="store_true",
        help="Skip the HTML report"
    )
    output_group.add_argument(
        "--no-csv",
        action="store_true",
        help="Skip the CSV export"
    )
    output_group.add_argument(
        "--no-json",
        action="store_true",
        help="Skip the JSON report"
    )
    output_group.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )

    parser = argparse.ArgumentParser(
        prog="nestaudit",
        description="nestaudit - Active Directory group nesting audit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Groups a user belongs to, from a SharpHound export
  %(prog)s memberof jdoe --snapshot 20240101_users.json 20240101_groups.json

  # Members of a group, including inactive users, as a tree
  %(prog)s members "Domain Admins" -u auditor -d corp.local -s 192.168.1.100 --include-inactive --view tree
        """
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"nestaudit {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    memberof = subparsers.add_parser(
        "memberof",
        parents=[common],
        help="List every group an object belongs to"
    )
    memberof.add_argument("identity", help="User, computer or group name, id or DN")

    members = subparsers.add_parser(
        "members",
        parents=[common],
        help="List every object a group contains"
    )
    members.add_argument("identity", help="Group name, id or DN")

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    has_ldap = args.domain and args.server
    if not args.snapshot and not has_ldap:
        parser.error("Must provide --snapshot files or LDAP connection details: -d (domain), -s (server)")

    config = {
        "traversal": {
            "inactive_days": args.inactive_days,
            "include_inactive": args.include_inactive,
            "expand_nested": not args.no_nested,
            "max_depth": args.max_depth,
            "max_nodes": args.max_nodes,
        },
        "ldap": {
            "use_ssl": args.ssl,
        },
        "output": {
            "output_dir": args.output,
            "generate_html": not args.no_html,
            "generate_csv": not args.no_csv,
            "generate_json": not args.no_json,
        },
        "verbose": args.verbose,
    }

    try:
        result = run_audit(
            direction=args.command,
            identity=args.identity,
            input_files=args.snapshot,
            server_ip=args.server,
            domain=args.domain,
            username=args.username,
            password=args.password,
            config=config,
            view=args.view,
        )
    except ObjectNotFoundError as e:
        print(f"[!] {e}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except (NestAuditError, ValueError, OSError) as e:
        print(f"[!] Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_ERROR

    print(result.text)

    if result.report_paths:
        print("\nResults saved to:")
        for path in result.report_paths:
            print(f"  - {path}")

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
