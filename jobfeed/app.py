import argparse
import json
from pathlib import Path

from sqlalchemy.exc import IntegrityError

from . import __version__
from .analytics import get_job_analytics_summary, record_job_view
from .database import VIEWER_TYPES, get_session, init_database
from .env import get_settings, load_env
from .filters import JobFilters
from .ingest import ingest_file
from .logger import get_logger, reset_logger
from .query import StorageUnavailableError, fetch_page
from .sorting import SORT_STRATEGIES, DEFAULT_SORT


def _db_path(args: argparse.Namespace) -> Path:
    return Path(args.db) if args.db else get_settings().db_path


def _require_db(db_path: Path) -> None:
    if not db_path.exists():
        raise SystemExit(f"Database not found: {db_path}. Run 'jobfeed init-db' first.")


def cmd_init_db(args: argparse.Namespace) -> None:
    db_path = _db_path(args)
    init_database(db_path)
    print(f"Initialized database at {db_path}")


def cmd_ingest(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    try:
        counts = ingest_file(input_path, _db_path(args), strict=args.strict)
    except (json.JSONDecodeError, ValueError) as e:
        raise SystemExit(f"Invalid fixture file: {e}")
    except IntegrityError as e:
        raise SystemExit(f"Fixture rejected by the database: {e.orig}")
    print(
        "Done. profiles={profiles} categories={categories} jobs={jobs} "
        "applications={applications} skipped={skipped}".format(**counts)
    )


def _filters_from_args(args: argparse.Namespace) -> JobFilters:
    verified = True if args.verified else None
    return JobFilters(
        category_ids=args.category or None,
        search=args.search,
        min_budget=args.min_budget,
        max_budget=args.max_budget,
        verified=verified,
        latitude=args.lat,
        longitude=args.lng,
        radius_miles=args.radius,
    )


def cmd_page(args: argparse.Namespace) -> None:
    settings = get_settings()
    db_path = _db_path(args)
    _require_db(db_path)

    limit = args.limit if args.limit is not None else settings.page_size
    session = get_session(db_path)
    try:
        page = fetch_page(
            session,
            cursor=args.cursor,
            limit=limit,
            filters=_filters_from_args(args),
            sort=args.sort,
            max_page_size=settings.max_page_size,
        )
    except ValueError as e:
        raise SystemExit(str(e))
    except StorageUnavailableError as e:
        raise SystemExit(f"{e}. Try again later.")
    finally:
        session.close()

    if args.json:
        print(json.dumps(page.as_dict(), indent=2, default=str, ensure_ascii=False))
        return

    if not page.rows:
        print("No listings found.")
        return
    for row in page.rows:
        print(f"ID: {row['id']}")
        print(f"  Title: {row['title']}")
        print(f"  Budget: {row['budget']}")
        print(f"  Customer: {row['customer_full_name']}")
        print(f"  Created: {row['created_at']}")
        if row["distance_miles"] is not None:
            print(f"  Distance: {row['distance_miles']:.1f} mi")
        print()
    print(f"Next cursor: {page.next_cursor if page.has_more else '(end)'}")


def cmd_track_view(args: argparse.Namespace) -> None:
    db_path = _db_path(args)
    _require_db(db_path)
    session = get_session(db_path)
    try:
        recorded = record_job_view(
            session,
            args.job_id,
            viewer_id=args.viewer_id,
            viewer_type=args.viewer_type,
            session_id=args.session_id,
        )
    except IntegrityError:
        raise SystemExit(f"Unknown viewer: {args.viewer_id}")
    finally:
        session.close()
    if not recorded:
        raise SystemExit(f"Job not found: {args.job_id}")
    print(f"Recorded view for {args.job_id}")


def cmd_stats(args: argparse.Namespace) -> None:
    db_path = _db_path(args)
    _require_db(db_path)
    session = get_session(db_path)
    try:
        summary = get_job_analytics_summary(session, args.job_id)
    finally:
        session.close()
    if summary is None:
        print(f"No analytics for {args.job_id}")
        return
    print(json.dumps(summary, indent=2, default=str))


def main(argv=None):
    # Load .env if present (JOBFEED_DB_PATH, JOBFEED_LOG_LEVEL, etc.)
    load_env()
    settings = get_settings()
    reset_logger()
    get_logger(level=settings.log_level, log_dir=settings.log_dir)

    parser = argparse.ArgumentParser(prog="jobfeed", description="Job listing feed over a marketplace database")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help=f"Path to SQLite database (default: {settings.db_path})")

    subparsers = parser.add_subparsers(dest="command")
    init = subparsers.add_parser("init-db", help="Create the database and tables")
    init.set_defaults(func=cmd_init_db)

    ing = subparsers.add_parser("ingest", help="Load profiles, categories, jobs and applications from JSON")
    ing.add_argument("--input", required=True, help="Path to fixture JSON")
    ing.add_argument("--strict", action="store_true", help="Reject listings without any price")
    ing.set_defaults(func=cmd_ingest)

    pg = subparsers.add_parser("page", help="Fetch one page of open job listings")
    pg.add_argument("--cursor", help="Cursor from a previous page")
    pg.add_argument("--limit", type=int, help=f"Page size (default: {settings.page_size})")
    pg.add_argument("--category", action="append", help="Category id (repeatable)")
    pg.add_argument("--search", help="Text to match in title or description")
    pg.add_argument("--min-budget", type=float, help="Minimum effective price")
    pg.add_argument("--max-budget", type=float, help="Maximum effective price")
    pg.add_argument("--verified", action="store_true", help="Only verified customers")
    pg.add_argument("--lat", type=float, help="Latitude for distance filter")
    pg.add_argument("--lng", type=float, help="Longitude for distance filter")
    pg.add_argument("--radius", type=float, help="Radius in miles for distance filter")
    pg.add_argument("--sort", default=DEFAULT_SORT, help=f"One of: {', '.join(SORT_STRATEGIES)}")
    pg.add_argument("--json", action="store_true", help="Print the page as JSON")
    pg.set_defaults(func=cmd_page)

    tv = subparsers.add_parser("track-view", help="Record a view of a job")
    tv.add_argument("--job-id", required=True, help="Job id")
    tv.add_argument("--viewer-id", help="Viewer profile id (omit for guests)")
    tv.add_argument("--viewer-type", default="guest", choices=VIEWER_TYPES, help="Viewer type")
    tv.add_argument("--session-id", help="Client session id")
    tv.set_defaults(func=cmd_track_view)

    st = subparsers.add_parser("stats", help="Show analytics counters for a job")
    st.add_argument("--job-id", required=True, help="Job id")
    st.set_defaults(func=cmd_stats)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
