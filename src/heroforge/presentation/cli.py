from __future__ import annotations

import argparse
import random
from typing import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from heroforge.application.services.balance_tables import LEVEL_CAP, total_xp_to_reach, xp_schedule
from heroforge.application.services.seed_policy import derive_creation_seed
from heroforge.bootstrap import ForgeServices, create_forge_services
from heroforge.domain.errors import ForgeError
from heroforge.domain.models.character import NameIndices
from heroforge.domain.models.economy import TicketKind
from heroforge.domain.models.stats import ATTRIBUTE_NAMES
from heroforge.domain.services.attribute_allocator import allocate_attributes
from heroforge.infrastructure.randomness.inmemory_oracle import InMemoryRandomnessOracle


_CONSOLE = Console()
_TITLE_STYLE = "bold yellow"


def _ornate_title(title: str) -> str:
    return f"[{_TITLE_STYLE}]{title}[/{_TITLE_STYLE}]"


def _attribute_table(title: str) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Id", justify="right")
    table.add_column("Name")
    table.add_column("Lvl", justify="right")
    for name in ATTRIBUTE_NAMES:
        table.add_column(name[:3].upper(), justify="right")
    table.add_column("Pts", justify="right")
    return table


def _run_simulate(args: argparse.Namespace, console: Console) -> int:
    rng = random.Random(args.seed)
    oracle = InMemoryRandomnessOracle(entropy=lambda: rng.getrandbits(256))
    services: ForgeServices = create_forge_services(oracle=oracle)

    owners = [f"owner-{index + 1}" for index in range(max(1, args.owners))]
    for owner in owners:
        services.ticket_ledger.grant(owner, TicketKind.CREATION, args.characters)
        for _ in range(args.characters):
            try:
                services.coordinator.request_creation(owner, name_set=rng.random() < 0.5)
            except ForgeError as exc:
                console.print(f"[red]{owner}: {exc}[/red]")
                break
            oracle.deliver_all()

    if args.xp > 0:
        for owner in owners:
            for record in services.coordinator.character_repo.list_by_owner(owner):
                services.progression.award_experience(int(record.id), args.xp)

    for owner in owners:
        roster = services.characters.roster(owner)
        table = _attribute_table(f"{owner} ({roster.active_count}/{roster.allowance} active)")
        for view in roster.characters:
            name = services.name_registry.display_name(
                NameIndices(view.name_set, view.first_name_index, view.surname_index)
            )
            table.add_row(
                str(view.character_id),
                name,
                str(view.level),
                *(str(view.attributes[attribute]) for attribute in ATTRIBUTE_NAMES),
                str(view.attribute_points),
            )
        console.print(table)

    console.print(
        Panel.fit(
            f"Backend: {services.backend}\nEvents published: {services.event_bus.published_count}",
            title=_ornate_title("Simulation"),
            border_style="green",
        )
    )
    return 0


def _run_allocate(args: argparse.Namespace, console: Console) -> int:
    seed = derive_creation_seed(args.random_value, args.request_id, args.owner)
    result = allocate_attributes(seed, args.name_set)
    lines = [f"{name:<13}{value:>3}" for name, value in result.attributes.as_dict().items()]
    lines.append(f"{'total':<13}{result.attributes.total:>3}")
    if result.repaired:
        lines.append("[yellow]allocation was repaired[/yellow]")
    console.print(
        Panel.fit(
            "\n".join(lines),
            title=_ornate_title(f"Request {args.request_id} for {args.owner}"),
            border_style="yellow",
        )
    )
    return 0


def _run_schedule(args: argparse.Namespace, console: Console) -> int:
    table = Table(title=f"Experience schedule (cap {LEVEL_CAP})")
    table.add_column("Level", justify="right")
    table.add_column("XP for level", justify="right")
    table.add_column("Cumulative", justify="right")
    for level, required in xp_schedule():
        table.add_row(str(level), str(required), str(total_xp_to_reach(level)))
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="heroforge", description="Character creation and progression engine")
    subparsers = parser.add_subparsers(dest="command", required=True)

    simulate = subparsers.add_parser("simulate", help="Create characters against an in-process oracle")
    simulate.add_argument("--owners", type=int, default=2)
    simulate.add_argument("--characters", type=int, default=3, help="Creation tickets granted per owner")
    simulate.add_argument("--xp", type=int, default=0, help="Experience awarded to every character afterwards")
    simulate.add_argument("--seed", type=int, default=None, help="Seed for reproducible oracle values")
    simulate.set_defaults(handler=_run_simulate)

    allocate = subparsers.add_parser("allocate", help="Show the attributes a fulfillment would produce")
    allocate.add_argument("--random-value", type=int, required=True)
    allocate.add_argument("--request-id", default="1")
    allocate.add_argument("--owner", default="A")
    allocate.add_argument("--name-set", action="store_true")
    allocate.set_defaults(handler=_run_allocate)

    schedule = subparsers.add_parser("schedule", help="Print the experience table")
    schedule.set_defaults(handler=_run_schedule)
    return parser


def run_cli(argv: Sequence[str] | None = None, *, console: Console | None = None) -> int:
    console = console or _CONSOLE
    args = build_parser().parse_args(argv)
    try:
        return int(args.handler(args, console))
    except ForgeError as exc:
        console.print(f"[bold red]Rejected:[/bold red] {exc}")
        return 2
