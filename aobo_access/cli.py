# Description:
#            Grant a regional AOBO (Admin On Behalf Of) foreign security group
#            the 'Owner' role on Azure subscriptions.
#
#            Subscriptions come from an input file (.txt with one id per line,
#            or .csv/.tsv with an Id/SubscriptionId/SubId column). Without a
#            file, every subscription visible to the signed-in identity is used.

# Usage:
#       python -m aobo_access [-f FILE] [-r {AU,NZ,HK,SG}] [-y] [--dry-run] [-l LOGLEVEL] [-h]

import argparse
import logging
from collections import namedtuple

from aobo_access.assigner import BatchRoleAssigner
from aobo_access.control_plane import AzureControlPlane
from aobo_access.errors import FatalSetupError, UnknownRegionError
from aobo_access.inputs import resolve_targets
from aobo_access.principals import PRINCIPALS, Region, get_principal
from aobo_access.report import build_report, print_summary

logger = logging.getLogger(__name__)

RunConfig = namedtuple("RunConfig", ["input_file", "region", "force", "dry_run", "loglevel"])


def parse_args(argv=None) -> RunConfig:
    parser = argparse.ArgumentParser(
        description="Grant a regional AOBO security group Owner access to Azure subscriptions."
    )
    parser.add_argument(
        "-f", "--file", dest="input_file", default=None,
        help="Input file with subscription ids (.txt, .csv or .tsv). Default: all accessible subscriptions.",
    )
    parser.add_argument(
        "-r", "--region", type=str.upper, choices=[r.value for r in Region], default=None,
        help="Region of the AOBO group to grant. Prompted for when omitted.",
    )
    parser.add_argument(
        "-y", "--force", action="store_true", help="Do not ask for confirmation before assigning"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Only report what would be assigned"
    )
    parser.add_argument(
        "-l", "--loglevel", default="INFO", help="Set the logging level"
    )
    args = parser.parse_args(argv)
    return RunConfig(args.input_file, args.region, args.force, args.dry_run, args.loglevel)


def prompt_region(input_fn=input, catalog=None) -> str:
    catalog = PRINCIPALS if catalog is None else catalog
    for region, principal in catalog.items():
        print(f"  {region.value}: {principal.display_name} ({principal.object_id})")
    try:
        answer = input_fn("Select region: ")
    except EOFError:
        raise UnknownRegionError("No region given") from None
    return answer.strip().upper()


def confirm(principal, targets, input_fn=input) -> bool:
    prompt = (
        f"Grant 'Owner' to {principal.display_name} ({principal.object_id}) "
        f"on {len(targets)} subscription(s)? [y/N]: "
    )
    try:
        answer = input_fn(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def main(argv=None, control_plane=None, input_fn=input) -> int:
    config = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.loglevel.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logger.debug("\n".join(f"{k}={v}" for k, v in config._asdict().items()))

    try:
        region = config.region or prompt_region(input_fn)
        principal = get_principal(region)
        logger.info(f"Selected principal {principal.display_name} ({principal.object_id})")

        if control_plane is None:
            control_plane = AzureControlPlane()
        control_plane.ensure_authenticated()

        targets = resolve_targets(control_plane, config.input_file)
    except FatalSetupError as e:
        logger.error(str(e))
        return 1

    if not (config.force or config.dry_run) and not confirm(principal, targets, input_fn):
        logger.warning("Aborted. No role assignments were made.")
        return 1

    assigner = BatchRoleAssigner(control_plane, principal, dry_run=config.dry_run)
    report = build_report(principal, assigner.run(targets))
    print_summary(report)

    if not report.succeeded:
        logger.error(f"{report.failed} subscription(s) failed. Re-run to retry them.")
    return report.exit_code
