"""Update iRODS study access groups from the study registry and LDAP.

Groups named ss_<study_id> are created for every study in the registry when
they do not already exist. The group store's "public" group is taken to hold
every available user.

If a study has a data access group string, the members of the named LDAP
groups (or the named users) that are also in the public group become the
members of ss_<study_id>. Without one, the group gets the whole public group
unless the study's data release strategy is "managed", in which case it is
left empty.

Studies with a contaminated human data access group string get an
ss_<study_id>_human group with the members it names. Studies flagged as
containing contaminated human DNA but with no such string get an empty
ss_<study_id>_human group. Contamination groups never default to public
membership.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

import config
import syncer
from errors import EXIT_OK, handle_errors

logger = config.get_logger(service="main")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="study-access-sync",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug level logging.")
    parser.add_argument(
        "--dry-run",
        "--dry_run",
        dest="dry_run",
        action="store_true",
        help="Report proposed changes, do not perform them.",
    )
    parser.add_argument(
        "--study",
        "--study_id",
        dest="study_ids",
        metavar="STUDY_ID",
        type=int,
        action="append",
        help="Restrict updates to a study identifier. May be used multiple times.",
    )
    parser.add_argument("--verbose", action="store_true", help="Print messages while processing.")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level when neither --debug nor --verbose is given.",
    )
    parser.add_argument(
        "--audit-dropped",
        dest="audit_dropped",
        action="store_true",
        default=None,
        help="Log directory users left out of a group because they have no iRODS account.",
    )
    return parser.parse_args(argv)


def select_log_level(args: argparse.Namespace, default: str = "ERROR") -> str:
    if args.verbose or (args.dry_run and not args.debug):
        return "INFO"
    if args.debug:
        return "DEBUG"
    return args.log_level or default


@handle_errors(logger)
def run(args: argparse.Namespace) -> int:
    cfg = config.get_config()
    config.set_log_level(select_log_level(args, cfg.log_level))

    study_ids = [str(study_id) for study_id in args.study_ids] if args.study_ids else None
    result = syncer.run_sync(cfg, dry_run=args.dry_run, study_ids=study_ids, audit_dropped=args.audit_dropped)
    if args.dry_run:
        logger.info("Dry run: no changes were made")
    print(result.summary())
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    return run(parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
