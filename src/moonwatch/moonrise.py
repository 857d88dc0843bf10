"""CLI entry point for the nighttime moonrise finder.

    uv run moonwatch "Los Angeles, CA" --from 2024-06-01 --to 2024-06-30
    uv run moonwatch 90210 --days 60 --bedtime 23:30 --json
"""

import argparse
import json
import sys
from datetime import date, datetime

from dotenv import load_dotenv

load_dotenv()

from pytz import utc  # noqa: E402

from moonwatch.config import Settings  # noqa: E402
from moonwatch.errors import LocationResolutionError, ValidationError  # noqa: E402
from moonwatch.ephemeris import SkyfieldEngine  # noqa: E402
from moonwatch.fallback import AstralEngine  # noqa: E402
from moonwatch.geocode import LocationResolver  # noqa: E402
from moonwatch.i18n import t  # noqa: E402
from moonwatch.logging_config import setup_logging  # noqa: E402
from moonwatch.models import QueryInput, ScanResult  # noqa: E402
from moonwatch.scanner import RangeScanner, resolve_date_range  # noqa: E402
from moonwatch.timeutil import local_date  # noqa: E402


def build_scanner(settings: Settings, lang: str = "en") -> RangeScanner:
    return RangeScanner(
        primary=SkyfieldEngine(settings.data_dir),
        fallback=AstralEngine(),
        max_days=settings.max_days,
        lang=lang,
    )


def run(
    query: QueryInput,
    settings: Settings | None = None,
    resolver: LocationResolver | None = None,
    scanner: RangeScanner | None = None,
    today: date | None = None,
) -> ScanResult:
    """Top-level entry point: takes a QueryInput and returns a ScanResult.

    Args:
        query: User input (location, optional range, optional bedtime).
        settings: Explicit configuration; defaults are used when None.
        resolver: Location resolver; built from settings when None.
        scanner: Range scanner; built from settings when None.
        today: Start of the implicit range. Defaults to the observer's local date.

    Returns:
        Fully computed ScanResult.

    Raises:
        ValidationError: Missing location, malformed or oversized range, bad bedtime.
        LocationResolutionError: When the location cannot be geocoded.
    """
    settings = settings or Settings()
    if not query.location or not query.location.strip():
        raise ValidationError("error_location_required")

    scanner = scanner or build_scanner(settings)

    if resolver is None:
        owned = LocationResolver.from_settings(settings)
        try:
            location = owned.resolve(query.location)
        finally:
            owned.close()
    else:
        location = resolver.resolve(query.location)

    if today is None:
        today = local_date(datetime.now(utc), location.timezone)

    days = settings.default_days if query.days is None else query.days
    start, end = resolve_date_range(
        query.from_date, query.to_date, days, today, max_days=scanner.max_days
    )
    return scanner.scan(location, start, end, bedtime=query.bedtime)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="moonwatch",
        description="List nights where the moon rises between sunset and sunrise (or bedtime).",
    )
    parser.add_argument("location", help='ZIP code, city, or "City, State"')
    parser.add_argument("--from", dest="from_date", help="first date, YYYY-MM-DD")
    parser.add_argument("--to", dest="to_date", help="last date, YYYY-MM-DD")
    parser.add_argument("--days", type=int, help="range length from today when no dates are given")
    parser.add_argument("--bedtime", help='HH:MM cutoff, or "until sunrise" (default)')
    parser.add_argument("--lang", choices=("en", "ko"), default="en")
    parser.add_argument("--json", action="store_true", help="print the result as JSON")
    return parser.parse_args(argv)


def _print_table(result: ScanResult, lang: str) -> None:
    loc = result.location
    place = ", ".join(p for p in (loc.display_name, loc.state, loc.country) if p)
    print(
        t("scan_summary", lang).format(
            location=place, count=result.total_events, days=result.days_searched
        )
    )
    if not result.events:
        print(t("scan_empty", lang))
        return
    for e in result.events:
        print(
            f"{e.date}  sunset {e.sunset}  moonrise {e.moonrise}  "
            f"moonset {e.moonset or '--:--'}  sunrise {e.next_sunrise or '--:--'}  "
            f"{e.moon_phase_name} {e.moon_illumination:.1f}%  [{e.method}]"
        )


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValidationError as exc:
        print(exc.localized(args.lang), file=sys.stderr)
        return 2
    setup_logging(settings.log_level)

    query = QueryInput(
        location=args.location,
        from_date=args.from_date,
        to_date=args.to_date,
        days=args.days,
        bedtime=args.bedtime,
    )
    resolver = LocationResolver.from_settings(settings)
    try:
        result = run(
            query,
            settings=settings,
            resolver=resolver,
            scanner=build_scanner(settings, lang=args.lang),
        )
    except (ValidationError, LocationResolutionError) as exc:
        print(exc.localized(args.lang), file=sys.stderr)
        return 2
    finally:
        resolver.close()

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_table(result, args.lang)
    return 0


if __name__ == "__main__":
    sys.exit(main())
