"""CLI for the pacelab activity analysis toolkit."""

import logging

import click


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )


def _load_or_fail(loader, path: str):
    try:
        return loader(path)
    except ValueError as e:
        raise click.ClickException(f"{path}: {e}") from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """pacelab — endurance activity stream analysis."""
    _setup_logging(verbose)


@main.command("analyze")
@click.argument("streams_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--zones", "zones_file", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Athlete zone configuration (JSON).")
@click.option("--laps", "laps_file", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Lap metadata (JSON list).")
@click.option("--sport", default=None, help="Sport type, e.g. Run or Ride.")
@click.option("--ftp", default=None, type=float, help="Functional threshold power (W).")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Threshold overrides (JSON object).")
@click.option("--only", default=None, help="Comma-separated analyses to run.")
@click.option("--default-type", type=click.Choice(["tempo", "mixed"]), default=None,
              help="Workout label when no zone rule matches.")
@click.option("--unmatched", type=click.Choice(["exclude", "count", "nearest"]), default=None,
              help="Policy for samples outside every zone band.")
@click.option("--output", "-o", default=None, help="Write the report JSON to a file.")
def analyze_cmd(
    streams_file: str,
    zones_file: str | None,
    laps_file: str | None,
    sport: str | None,
    ftp: float | None,
    config_file: str | None,
    only: str | None,
    default_type: str | None,
    unmatched: str | None,
    output: str | None,
) -> None:
    """Run the full analysis on a stream bundle and print the report."""
    from dataclasses import replace

    from pacelab.analytics.config import AnalysisConfig, load_config
    from pacelab.analytics.pipeline import analyze_activity
    from pacelab.streams import load_laps, load_streams, load_zones

    streams = _load_or_fail(load_streams, streams_file)
    zones = _load_or_fail(load_zones, zones_file) if zones_file else None
    laps = _load_or_fail(load_laps, laps_file) if laps_file else None
    config = _load_or_fail(load_config, config_file) if config_file else AnalysisConfig()

    if default_type:
        config = replace(config, default_workout_type=default_type)
    if unmatched:
        config = replace(config, unmatched_zone_policy=unmatched)

    analyses = [a.strip() for a in only.split(",") if a.strip()] if only else None

    try:
        report = analyze_activity(
            streams,
            zones=zones,
            laps=laps,
            sport_type=sport,
            ftp=ftp,
            config=config,
            analyses=analyses,
        )
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    if output:
        with open(output, "w") as f:
            f.write(report.to_json())
        click.echo(f"Report written to {output}")
    else:
        click.echo(report.to_json())


@main.command("zones")
@click.argument("streams_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--zones", "zones_file", type=click.Path(exists=True, dir_okay=False),
              required=True, help="Athlete zone configuration (JSON).")
@click.option("--unmatched", type=click.Choice(["exclude", "count", "nearest"]),
              default="exclude", help="Policy for samples outside every zone band.")
def zones_cmd(streams_file: str, zones_file: str, unmatched: str) -> None:
    """Print time in heart rate and power zones."""
    from pacelab.analytics.zones import zone_distribution
    from pacelab.streams import load_streams, load_zones

    streams = _load_or_fail(load_streams, streams_file)
    zones = _load_or_fail(load_zones, zones_file)

    dist = zone_distribution(streams, zones, unmatched=unmatched)
    if dist is None or (dist.heart_rate is None and dist.power is None):
        click.echo("No zone data (missing time stream, channel, or zone bands).")
        return

    for label, breakdown in (("Heart rate", dist.heart_rate), ("Power", dist.power)):
        if breakdown is None:
            continue
        click.echo(f"\n{label} zones")
        click.echo(f"{'-' * 48}")
        for z in breakdown:
            upper = f"{z.max:g}" if z.max is not None else "+"
            click.echo(f"  Z{z.zone} {z.name:<16} {z.min:g}-{upper:<6} "
                       f"{z.time_seconds // 60:>4}:{z.time_seconds % 60:02d}  {z.percent:>3}%")


@main.command("intervals")
@click.argument("streams_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--min-interval", default=60.0, help="Shortest interval kept (seconds).")
def intervals_cmd(streams_file: str, min_interval: float) -> None:
    """Print detected work / rest intervals."""
    from pacelab.analytics.intervals import detect_intervals
    from pacelab.streams import load_streams

    streams = _load_or_fail(load_streams, streams_file)
    segments = detect_intervals(streams, min_interval_sec=min_interval)
    if segments is None:
        click.echo("No velocity/time streams; cannot detect intervals.")
        return
    if not segments:
        click.echo("No intervals detected.")
        return

    click.echo(f"{len(segments)} interval(s):")
    for seg in segments:
        hr = f"{seg.avg_heartrate} bpm" if seg.avg_heartrate is not None else "-"
        power = f"{seg.avg_power} W" if seg.avg_power is not None else "-"
        click.echo(f"  #{seg.index:<3} {seg.type:<9} {seg.duration:>6.0f}s  "
                   f"pace {seg.avg_pace or '-':>6}  hr {hr:>8}  power {power:>6}")


@main.command("climbs")
@click.argument("streams_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--min-gain", default=20.0, help="Minimum climb gain (m).")
def climbs_cmd(streams_file: str, min_gain: float) -> None:
    """Print sustained climbs and the terrain mix."""
    from pacelab.analytics.terrain import detect_climbs, terrain_distribution
    from pacelab.streams import load_streams

    streams = _load_or_fail(load_streams, streams_file)
    climbs = detect_climbs(streams, min_gain=min_gain)
    if climbs is None:
        click.echo("No distance/altitude streams; cannot detect climbs.")
        return

    click.echo(f"{len(climbs)} climb(s):")
    for c in climbs:
        cat = f"cat {c.category}" if c.category else "uncat."
        click.echo(f"  #{c.index:<3} {c.start_distance / 1000:.2f}-{c.end_distance / 1000:.2f} km  "
                   f"{c.distance:>7.0f} m  +{c.elevation_gain:.0f} m  {c.avg_grade:.1f}%  {cat}")

    terrain = terrain_distribution(streams)
    if terrain is not None:
        click.echo(f"\nTerrain: climbing {terrain.climbing.percent:.1f}%, "
                   f"flat {terrain.flat.percent:.1f}%, "
                   f"descending {terrain.descending.percent:.1f}%")


if __name__ == "__main__":
    main()
