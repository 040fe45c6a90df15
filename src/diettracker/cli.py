"""CLI interface using Typer."""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Generator, Optional

import typer
from rich.console import Console
from rich.table import Table

from diettracker.app_logging import configure_logging
from diettracker.config import get_settings
from diettracker.db import get_db
from diettracker.errors import DietTrackerError, InvalidDateError, UnknownFoodItemError
from diettracker.state.commands import (
    AddFoodCategory,
    AddMealEntry,
    Command,
    DeleteFoodCategory,
    DeleteFoodItem,
    DeleteMealEntry,
    ImportSnapshot,
    RenameFoodCategory,
    SetSelectedDate,
    SetWorkout,
    UpdateDayActivities,
    UpdateDayHydration,
    UpdateDayMeta,
    UpdateDayNotes,
    UpdateDayStepsAndSurvey,
    UpdateMealEntryQuantity,
    UpdateProfile,
    UpsertFoodItem,
)
from diettracker.state.models import (
    ActivityEntry,
    ActivityMode,
    ActivityType,
    FoodItem,
    MealEntry,
    MealSlot,
    Snapshot,
    Survey,
    new_id,
    today_iso,
)
from diettracker.state.store import SqliteStateStorage, Store
from diettracker.tracking.ema import latest_trend, weight_report
from diettracker.tracking.meals import calculate_effective_workout
from diettracker.tracking.momentum import compute_momentum
from diettracker.tracking.tdee import get_day_derived
from diettracker.tracking.trends import all_time_summary, window_summary

app = typer.Typer(
    help="Personal calorie and energy-balance tracker",
    no_args_is_help=True,
)
console = Console()

day_app = typer.Typer(help="View and edit day logs")
food_app = typer.Typer(help="Manage the food catalogue")
category_app = typer.Typer(help="Manage food categories")
meal_app = typer.Typer(help="Log meal entries")
profile_app = typer.Typer(help="View and update the profile")
state_app = typer.Typer(help="Import and export the whole snapshot")

app.add_typer(day_app, name="day")
app.add_typer(food_app, name="food")
food_app.add_typer(category_app, name="category")
app.add_typer(meal_app, name="meal")
app.add_typer(profile_app, name="profile")
app.add_typer(state_app, name="state")


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_settings().logging.level)


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict) -> None:
    """Output JSON response to stdout."""
    print(json.dumps(response, indent=2))


@contextmanager
def open_store() -> Generator[Store, None, None]:
    """Open the persisted store, flushing it on exit.

    DietTrackerError raised inside the block is reported and exits with 1.
    """
    settings = get_settings()
    store = Store(SqliteStateStorage(get_db(), key=settings.storage.state_key))
    try:
        yield store
    except DietTrackerError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        store.close()


def run(command: Command) -> Snapshot:
    """Dispatch a single command against the persisted store."""
    with open_store() as store:
        return store.dispatch(command)


def parse_date(value: Optional[str]) -> str:
    """Normalize a date argument to YYYY-MM-DD ("today" or None = today)."""
    if value is None or value.lower() == "today":
        return today_iso()
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise InvalidDateError(value)


def resolve_date(value: Optional[str]) -> str:
    try:
        return parse_date(value)
    except InvalidDateError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def parse_value(raw: str):
    """Interpret a KEY=VALUE right-hand side as a number where possible."""
    if raw.lower() in ("", "none", "null"):
        return None
    try:
        return float(raw)
    except ValueError:
        return raw


# ============================================================================
# day
# ============================================================================


@day_app.command("show")
def day_show(
    date_str: Optional[str] = typer.Argument(None, help="Date (YYYY-MM-DD, default: today)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show intake, TDEE breakdown and balance for a day."""
    key = resolve_date(date_str)
    with open_store() as store:
        snapshot = store.get_state()
    derived = get_day_derived(snapshot, key)

    if json_output:
        output_json(derived.to_dict())
        return

    breakdown = derived.tdee_breakdown
    table = Table(title=f"Day {key} ({derived.activity_mode.value})")
    table.add_column("Component", style="cyan")
    table.add_column("kcal", justify="right")

    table.add_row("Lunch", f"{derived.meals.lunch:.0f}")
    table.add_row("Dinner", f"{derived.meals.dinner:.0f}")
    table.add_row("Extras", f"{derived.meals.extras:.0f}")
    table.add_row("[bold]Intake[/bold]", f"[bold]{derived.total_intake:.0f}[/bold]")
    table.add_section()
    table.add_row("BMR", str(breakdown.bmr))
    table.add_row("Activity factor", f"{breakdown.af_computed:.3f}")
    if breakdown.source == "advanced":
        table.add_row("NEAT", str(breakdown.neat))
        table.add_row("EAT (net)", str(breakdown.eat))
    table.add_row("Maintenance + activity", str(breakdown.maintenance_plus_activity))
    table.add_row("TEF", str(breakdown.tef))
    table.add_row("[bold]TDEE[/bold]", f"[bold]{breakdown.tdee}[/bold]")
    table.add_section()

    color = "green" if derived.net_kcal <= 0 else "red"
    table.add_row("Net", f"[{color}]{derived.net_kcal:+d}[/{color}]")
    console.print(table)

    day = snapshot.day(key)
    if day.workout_calories:
        console.print(
            f"Workout: {calculate_effective_workout(day):.0f} kcal effective"
            + (f" ({day.workout_description})" if day.workout_description else "")
        )
    if day.weight_kg is not None:
        console.print(f"Weight: {day.weight_kg:.1f} kg")


@day_app.command("select")
def day_select(date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)")) -> None:
    """Set the selected date."""
    key = resolve_date(date_str)
    run(SetSelectedDate(date=key))
    console.print(f"[green]Selected:[/green] {key}")


@day_app.command("meta")
def day_meta(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    weight: Optional[float] = typer.Option(None, "--weight", "-w", help="Weight in kg"),
    factor: Optional[float] = typer.Option(None, "--factor", "-f", help="Manual activity factor"),
    mode: Optional[ActivityMode] = typer.Option(None, "--mode", "-m", help="Activity mode"),
    bmr: Optional[float] = typer.Option(None, "--bmr", help="BMR snapshot for the day"),
) -> None:
    """Update weight, activity factor, mode or BMR for a day."""
    key = resolve_date(date_str)
    patch = {}
    if weight is not None:
        patch["weightKg"] = weight
    if factor is not None:
        patch["activityFactor"] = factor
    if mode is not None:
        patch["activityMode"] = mode.value
    if bmr is not None:
        patch["bmrSnapshot"] = bmr

    if not patch:
        console.print("[yellow]Nothing to update[/yellow]")
        raise typer.Exit(1)

    run(UpdateDayMeta(date=key, patch=patch))
    console.print(f"[green]Updated {key}:[/green] {', '.join(patch)}")


@day_app.command("workout")
def day_workout(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    kcal: float = typer.Option(0.0, "--kcal", help="Workout burn in kcal"),
    intensity: Optional[float] = typer.Option(None, "--intensity", help="Intensity multiplier"),
    desc: str = typer.Option("", "--desc", help="Description"),
) -> None:
    """Record the day's workout."""
    key = resolve_date(date_str)
    snapshot = run(
        SetWorkout(
            date=key,
            workout_calories=max(0.0, kcal),
            intensity_factor=intensity,
            workout_description=desc,
        )
    )
    effective = calculate_effective_workout(snapshot.day(key))
    console.print(f"[green]Workout logged:[/green] {effective:.0f} kcal effective")


@day_app.command("hydration")
def day_hydration(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    litres: float = typer.Argument(..., help="Litres drunk"),
) -> None:
    """Set the day's hydration."""
    key = resolve_date(date_str)
    snapshot = run(UpdateDayHydration(date=key, hydration_litres=litres))
    console.print(f"[green]Hydration:[/green] {snapshot.day(key).hydration_litres:.2f} L on {key}")


@day_app.command("notes")
def day_notes(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    text: str = typer.Argument(..., help="Notes text"),
) -> None:
    """Replace the day's notes."""
    key = resolve_date(date_str)
    run(UpdateDayNotes(date=key, notes=text))
    console.print(f"[green]Notes saved for {key}[/green]")


@day_app.command("steps")
def day_steps(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    steps: Optional[int] = typer.Option(None, "--steps", help="Step count"),
    load: Optional[int] = typer.Option(None, "--load", min=1, max=5, help="Subjective load 1-5"),
    standing: Optional[float] = typer.Option(None, "--standing", help="Hours spent standing"),
    commute: bool = typer.Option(False, "--commute/--no-commute", help="Active commute"),
) -> None:
    """Record steps and the effort survey (used in advanced mode)."""
    key = resolve_date(date_str)
    survey = None
    if load is not None or standing is not None or commute:
        survey = Survey(
            subjective_load=load,
            standing_hours=max(0.0, standing or 0.0),
            active_commute=commute,
        )
    run(UpdateDayStepsAndSurvey(date=key, steps=steps, survey=survey))
    console.print(f"[green]Steps and survey saved for {key}[/green]")


@day_app.command("activity")
def day_activity(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    activity_type: ActivityType = typer.Option(ActivityType.WALK, "--type", "-t", help="Activity type"),
    km: Optional[float] = typer.Option(None, "--km", help="Distance in km"),
    minutes: Optional[float] = typer.Option(None, "--minutes", help="Duration in minutes"),
    kcal: Optional[float] = typer.Option(None, "--kcal", help="Explicit burn in kcal"),
    label: str = typer.Option("", "--label", help="Label"),
    clear: bool = typer.Option(False, "--clear", help="Remove all activities for the day"),
) -> None:
    """Add an activity bout to a day (or clear them)."""
    key = resolve_date(date_str)
    with open_store() as store:
        day = store.get_state().day(key)
        if clear:
            activities = []
        else:
            activities = [
                *day.activities,
                ActivityEntry(
                    id=new_id(),
                    type=activity_type,
                    distance_km=km,
                    duration_min=minutes,
                    kcal=kcal,
                    label=label,
                ),
            ]
        store.dispatch(UpdateDayActivities(date=key, activities=activities))

    if clear:
        console.print(f"[green]Cleared activities for {key}[/green]")
    else:
        console.print(f"[green]Added {activity_type.value}[/green] ({len(activities)} on {key})")


# ============================================================================
# food
# ============================================================================


@food_app.command("add")
def food_add(
    name: str = typer.Argument(..., help="Food name"),
    kcal: float = typer.Argument(..., help="kcal per unit"),
    unit: str = typer.Option("serving", "--unit", "-u", help="Unit label"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category"),
    favourite: bool = typer.Option(False, "--favourite", help="Mark as favourite"),
    food_id: Optional[str] = typer.Option(None, "--id", help="Existing id to overwrite"),
) -> None:
    """Add or update a catalogue food."""
    item = FoodItem(
        id=food_id or new_id(),
        name=name,
        category=category,
        unit_label=unit,
        kcal_per_unit=kcal,
        is_favourite=favourite,
    )
    run(UpsertFoodItem(item=item))
    console.print(f"[green]Saved:[/green] {item.name} ({item.kcal_per_unit:.0f} kcal/{item.unit_label}) id={item.id}")


@food_app.command("list")
def food_list(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List catalogue foods."""
    with open_store() as store:
        snapshot = store.get_state()

    items = [f for f in snapshot.food_items if category is None or f.category == category]

    if json_output:
        output_json({"foods": [f.to_dict() for f in items], "categories": snapshot.food_categories})
        return

    if not items:
        console.print("No foods found")
        return

    table = Table(title="Foods")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("kcal/unit", justify="right")
    table.add_column("Unit")
    for f in items:
        name = f"★ {f.name}" if f.is_favourite else f.name
        table.add_row(f.id, name, f.category or "-", f"{f.kcal_per_unit:.0f}", f.unit_label)
    console.print(table)


@food_app.command("delete")
def food_delete(food_id: str = typer.Argument(..., help="Food id")) -> None:
    """Delete a catalogue food (logged meals keep their snapshot)."""
    with open_store() as store:
        if store.get_state().find_food_item(food_id) is None:
            raise UnknownFoodItemError(food_id)
        store.dispatch(DeleteFoodItem(food_id=food_id))
    console.print(f"[green]Deleted food {food_id}[/green]")


@category_app.command("add")
def category_add(name: str = typer.Argument(..., help="Category name")) -> None:
    """Add a food category."""
    run(AddFoodCategory(name=name.strip()))
    console.print(f"[green]Category added:[/green] {name.strip()}")


@category_app.command("rename")
def category_rename(
    old: str = typer.Argument(..., help="Current name"),
    new: str = typer.Argument(..., help="New name"),
) -> None:
    """Rename a category and re-tag its foods."""
    with open_store() as store:
        if old not in store.get_state().food_categories:
            raise DietTrackerError(f"No category named '{old}'")
        store.dispatch(RenameFoodCategory(old_name=old, new_name=new.strip()))
    console.print(f"[green]Renamed[/green] {old} -> {new.strip()}")


@category_app.command("delete")
def category_delete(name: str = typer.Argument(..., help="Category name")) -> None:
    """Delete a category; its foods become uncategorised."""
    run(DeleteFoodCategory(name=name))
    console.print(f"[green]Category deleted:[/green] {name}")


# ============================================================================
# meal
# ============================================================================


@meal_app.command("add")
def meal_add(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    food_id: str = typer.Argument(..., help="Food id"),
    quantity: float = typer.Argument(..., help="Quantity in the food's unit"),
    slot: MealSlot = typer.Option(MealSlot.LUNCH, "--slot", "-s", help="Meal slot"),
) -> None:
    """Log a food against a day."""
    key = resolve_date(date_str)
    with open_store() as store:
        food = store.get_state().find_food_item(food_id)
        if food is None:
            raise UnknownFoodItemError(food_id)
        entry = MealEntry.from_food_item(food, slot, quantity)
        store.dispatch(AddMealEntry(date=key, entry=entry))
    console.print(
        f"[green]Logged:[/green] {entry.quantity:g} × {entry.food_name_snapshot} "
        f"= {entry.total_kcal} kcal ({slot.value}, id={entry.id})"
    )


@meal_app.command("qty")
def meal_qty(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    meal_id: str = typer.Argument(..., help="Meal entry id"),
    quantity: float = typer.Argument(..., help="New quantity"),
) -> None:
    """Change the quantity of a logged entry."""
    key = resolve_date(date_str)
    run(UpdateMealEntryQuantity(date=key, meal_id=meal_id, quantity=quantity))
    console.print(f"[green]Updated entry {meal_id}[/green]")


@meal_app.command("delete")
def meal_delete(
    date_str: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    meal_id: str = typer.Argument(..., help="Meal entry id"),
) -> None:
    """Remove a logged entry."""
    key = resolve_date(date_str)
    run(DeleteMealEntry(date=key, meal_id=meal_id))
    console.print(f"[green]Deleted entry {meal_id}[/green]")


# ============================================================================
# profile
# ============================================================================


@profile_app.command("show")
def profile_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the profile."""
    with open_store() as store:
        profile = store.get_state().profile

    if json_output:
        output_json(profile.to_dict())
        return

    table = Table(title="Profile")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in profile.to_dict().items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


@profile_app.command("set")
def profile_set(
    pairs: list[str] = typer.Argument(..., help="KEY=VALUE pairs (camelCase keys)"),
) -> None:
    """Update profile fields, e.g. ``bmr=1650 weightKg=72``."""
    patch = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key.strip():
            console.print(f"[red]Invalid pair: {pair} (expected KEY=VALUE)[/red]")
            raise typer.Exit(1)
        patch[key.strip()] = parse_value(raw.strip())

    snapshot = run(UpdateProfile(patch=patch))
    console.print(f"[green]Profile updated:[/green] {', '.join(patch)}")
    console.print(f"Activity factor: {snapshot.profile.default_activity_factor:g}")


# ============================================================================
# momentum / trends
# ============================================================================


@app.command()
def momentum(
    window: Optional[int] = typer.Option(None, "--window", "-w", help="Logged days to average"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the direction of recent energy balance."""
    settings = get_settings()
    with open_store() as store:
        snapshot = store.get_state()

    result = compute_momentum(
        snapshot,
        window_days=window or settings.momentum.window_days,
        max_lookback_days=settings.momentum.max_lookback_days,
    )

    if json_output:
        output_json(result.to_dict())
        return

    if result.days_considered == 0:
        console.print("No logged days yet")
        return

    console.print(
        f"[bold]{result.label}[/bold]  momentum {result.momentum_scaled:+.2f} ({result.zone}), "
        f"avg {result.avg_delta_per_day * 1000:+.0f} g/day over {result.days_considered} days"
    )
    table = Table()
    table.add_column("Date")
    table.add_column("Deficit", justify="right")
    table.add_column("kg", justify="right")
    table.add_column("Zone")
    for d in result.history:
        table.add_row(d.date, f"{d.deficit:+d}", f"{d.delta_kg:+.3f}", d.zone)
    console.print(table)


@app.command()
def trends(
    days: int = typer.Option(7, "--days", "-d", help="Logged days in the window"),
    weight_days: int = typer.Option(30, "--weight-days", help="Calendar days of weigh-ins for the weight report"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show averages over recent days and all-time totals."""
    with open_store() as store:
        snapshot = store.get_state()

    window = window_summary(snapshot, days)
    totals = all_time_summary(snapshot)
    trend = latest_trend(snapshot)
    report = weight_report(snapshot, weight_days)

    if json_output:
        output_json({
            "window": window.to_dict(),
            "allTime": totals.to_dict(),
            "weightTrend": trend.to_dict() if trend else None,
            "weightReport": report.to_dict() if report else None,
        })
        return

    table = Table(title=f"Last {window.days_considered} logged days")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Avg intake", f"{window.avg_intake:.0f}")
    table.add_row("Avg TDEE", f"{window.avg_tdee:.0f}")
    table.add_row("Avg deficit", f"{window.avg_deficit:+.0f}")
    table.add_row("Avg vs target", f"{window.avg_vs_target:+.0f}")
    console.print(table)

    console.print(
        f"All time: {totals.days_logged} days, net deficit {totals.net_deficit:+.0f} kcal "
        f"(≈ {totals.estimated_kg_change:+.2f} kg)"
    )
    if trend:
        console.print(f"Weight trend: {trend.trend_kg:.1f} kg (last {trend.weight_kg:.1f} kg on {trend.date})")
    if report:
        console.print(
            f"Trend over {report.period_days} days: {report.trend_change:+.2f} kg "
            f"({report.weekly_rate:+.2f} kg/week, implied deficit {report.implied_daily_deficit:+.0f} kcal/day)"
        )


# ============================================================================
# state
# ============================================================================


@state_app.command("export")
def state_export(path: Path = typer.Argument(..., help="Output JSON file")) -> None:
    """Write the whole snapshot to a JSON file."""
    with open_store() as store:
        data = store.get_state().to_dict()
    path.write_text(json.dumps(data, indent=2))
    console.print(f"[green]Exported to {path}[/green]")


@state_app.command("import")
def state_import(path: Path = typer.Argument(..., help="JSON file to import")) -> None:
    """Replace the whole snapshot with a JSON export (migrated on import)."""
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON: {e}[/red]")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print("[red]Expected a JSON object[/red]")
        raise typer.Exit(1)

    snapshot = run(ImportSnapshot(data=data))
    console.print(
        f"[green]Imported:[/green] {len(snapshot.day_logs)} days, {len(snapshot.food_items)} foods"
    )


if __name__ == "__main__":
    app()
