import argparse
from typing import List, Optional

from . import __version__
from .cleanup import cleanup_finished_jobs
from .config import load_env
from .errors import ConfigurationError
from .job import Job
from .migrate import copy_jobs
from .persistence import get_persistence, load_adapter, resolver

LISTINGS = ["all", "incomplete", "completed", "failed"]


def print_job(job: Job) -> None:
    print(f"ID: {job.id}")
    print(f"  Worker: {job.worker}")
    print(f"  Status: {job.status.value}")
    print(f"  Arguments: {job.arguments!r}")
    print(f"  Created: {job.created_at.isoformat() if job.created_at else '-'}")
    print(f"  Updated: {job.updated_at.isoformat() if job.updated_at else '-'}")


def cmd_init(args: argparse.Namespace) -> None:
    if not get_persistence().initialize():
        raise SystemExit("Storage could not be initialized")
    print("Storage ready.")


def cmd_list(args: argparse.Namespace) -> None:
    persistence = get_persistence()
    jobs: List[Job] = getattr(persistence, args.status)(args.worker)
    if not jobs:
        print("No jobs found.")
        return
    label = "" if args.status == "all" else f"{args.status} "
    print(f"Found {len(jobs)} {label}jobs:\n")
    for job in jobs:
        print_job(job)
        print()


def cmd_show(args: argparse.Namespace) -> None:
    job = get_persistence().find(args.id)
    if job is None:
        raise SystemExit(f"Job not found: {args.id}")
    print_job(job)


def cmd_destroy(args: argparse.Namespace) -> None:
    get_persistence().destroy(args.id)
    print(f"Destroyed job {args.id}")


def cmd_cleanup(args: argparse.Namespace) -> None:
    before, after = cleanup_finished_jobs(
        get_persistence(),
        days=args.days,
        worker=args.worker,
        include_failed=args.include_failed,
    )
    print(f"Removed {before - after} finished jobs, {after} remaining.")


def cmd_migrate(args: argparse.Namespace) -> None:
    source = load_adapter(args.source)
    target = load_adapter(args.target)
    count = copy_jobs(source, target, dry_run=args.dry_run)
    if args.dry_run:
        print(f"[DRY RUN] Would copy {count} jobs")
    else:
        print(f"Copied {count} jobs")


def main(argv: Optional[List[str]] = None):
    # Load .env if present (QUE_PERSISTENCE_ADAPTER, QUE_DATABASE_URL, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="que", description="Inspect and maintain the job store")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--adapter", help="Adapter to use: sql, memory, json or package.module:Class (default: QUE_PERSISTENCE_ADAPTER)")

    subparsers = parser.add_subparsers(dest="command")
    ini = subparsers.add_parser("init", help="Create the storage structures if missing")
    ini.set_defaults(func=cmd_init)

    lst = subparsers.add_parser("list", help="List stored jobs")
    lst.add_argument("--worker", help="Only jobs of this worker")
    lst.add_argument("--status", choices=LISTINGS, default="all", help="Classification to list (default: all)")
    lst.set_defaults(func=cmd_list)

    shw = subparsers.add_parser("show", help="Show a single job")
    shw.add_argument("id", type=int, help="Job id")
    shw.set_defaults(func=cmd_show)

    dst = subparsers.add_parser("destroy", help="Delete a job")
    dst.add_argument("id", type=int, help="Job id")
    dst.set_defaults(func=cmd_destroy)

    cln = subparsers.add_parser("cleanup", help="Remove finished jobs older than --days")
    cln.add_argument("--days", type=int, default=7, help="Keep finished jobs this many days (default: 7)")
    cln.add_argument("--worker", help="Only jobs of this worker")
    cln.add_argument("--include-failed", action="store_true", help="Also remove failed jobs")
    cln.set_defaults(func=cmd_cleanup)

    mig = subparsers.add_parser("migrate", help="Copy every job from one adapter to another, keeping ids")
    mig.add_argument("--from", dest="source", required=True, help="Source adapter (e.g. json)")
    mig.add_argument("--to", dest="target", required=True, help="Target adapter (e.g. sql)")
    mig.add_argument("--dry-run", action="store_true", help="Only count the jobs")
    mig.set_defaults(func=cmd_migrate)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if args.adapter:
        try:
            resolver.configure(args.adapter)
        except ConfigurationError as e:
            raise SystemExit(str(e))

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
