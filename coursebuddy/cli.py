"""
CLI entry point for CourseBuddy Scheduler.

Commands:
- serve: Start the API server
- refresh: Re-pull catalog subjects for a term
- search: Search the catalog
- schedules: List a user's saved schedules
- show: Print a saved schedule as a weekly grid
"""
import argparse
import sys


def serve(args):
    """Start the API server."""
    import uvicorn

    print(f"Starting CourseBuddy Scheduler API on http://{args.host}:{args.port}")
    print(f"API docs available at http://{args.host}:{args.port}/docs")

    uvicorn.run(
        "coursebuddy.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def refresh(args):
    """Refresh catalog subjects from the source."""
    from coursebuddy.services.catalog_service import create_service

    service = create_service()
    subjects = args.subjects.split(",") if args.subjects else None
    courses, _ = service.fetch_courses(term=args.term, refresh=True, subjects=subjects)

    print(f"\n=== Refresh Complete ===")
    print(f"Term:     {args.term or 'default'}")
    print(f"Sections: {len(courses):,}")
    print(f"Subjects: {', '.join(service.get_subjects(args.term)) or '-'}")


def search(args):
    """Search for courses."""
    from coursebuddy.services.catalog_service import create_service

    service = create_service()
    if args.query:
        courses = service.search(args.query, term=args.term, limit=args.limit)
    else:
        courses = service.get_courses(args.term)[:args.limit]

    if not courses:
        print("No courses found matching your criteria.")
        return

    print(f"\n=== Found {len(courses)} sections ===\n")
    for c in courses:
        avail = "✓" if c.status == "Open" else "✗"
        print(f"[{avail}] {c.course_code} {c.section} ({c.course_type.value}): {c.title or ''}")
        print(f"    {c.schedule_display}")
        if args.verbose:
            print(f"    Instructor: {c.instructor or 'TBA'}, Location: {c.location or 'TBA'}")
            if c.seats_total is not None:
                print(f"    Seats: {c.seats_available}/{c.seats_total}")
        print()


def _find_user_id(username: str):
    from sqlalchemy import select
    from coursebuddy.models.database import User, get_session_factory

    with get_session_factory()() as session:
        user_id = session.execute(
            select(User.id).where(User.username == username)
        ).scalar_one_or_none()

    if user_id is None:
        print(f"Error: no user named {username}")
        sys.exit(1)
    return user_id


def list_schedules(args):
    """List saved schedules of a user."""
    from coursebuddy.services.schedule_store import create_store

    store = create_store()
    summaries = store.list_schedules(_find_user_id(args.user))

    if not summaries:
        print("No saved schedules yet.")
        return

    print(f"\n=== Saved schedules for {args.user} ===\n")
    for s in summaries:
        created = s.created_at.strftime("%Y-%m-%d %H:%M") if s.created_at else "-"
        print(f"  {s.name:<40} {s.course_count:>3} blocks  {created}")


def show(args):
    """Print a saved schedule as a weekly grid."""
    from coursebuddy.services.schedule_builder import format_grid
    from coursebuddy.services.schedule_store import create_store

    store = create_store()
    user_id = _find_user_id(args.user)
    loaded = store.load(user_id, args.name) if args.name else store.load_latest(user_id)

    if loaded is None:
        print("Schedule not found.")
        sys.exit(1)

    print(f"\n=== {loaded.name} ===\n")
    print(format_grid(loaded.blocks))


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="CourseBuddy Scheduler - weekly timetable planning for UBC students",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.set_defaults(func=serve)

    # Refresh command
    refresh_parser = subparsers.add_parser("refresh", help="Refresh catalog subjects")
    refresh_parser.add_argument("-t", "--term", help="Term code (e.g., 2025W)")
    refresh_parser.add_argument("-s", "--subjects", help="Comma-separated subjects (e.g., COMM,CPSC)")
    refresh_parser.set_defaults(func=refresh)

    # Search command
    search_parser = subparsers.add_parser("search", help="Search for courses")
    search_parser.add_argument("query", nargs="?", help="Code, title, or section")
    search_parser.add_argument("-t", "--term", help="Term code")
    search_parser.add_argument("-l", "--limit", type=int, default=20, help="Max results")
    search_parser.add_argument("-v", "--verbose", action="store_true", help="Show section details")
    search_parser.set_defaults(func=search)

    # Schedules command
    schedules_parser = subparsers.add_parser("schedules", help="List saved schedules")
    schedules_parser.add_argument("-u", "--user", required=True, help="CWL username")
    schedules_parser.set_defaults(func=list_schedules)

    # Show command
    show_parser = subparsers.add_parser("show", help="Print a saved schedule")
    show_parser.add_argument("name", nargs="?", help="Schedule name (default: most recent)")
    show_parser.add_argument("-u", "--user", required=True, help="CWL username")
    show_parser.set_defaults(func=show)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    args.func(args)


if __name__ == "__main__":
    main()
