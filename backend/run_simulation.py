"""
Run a VentureSim session from the command line.

Sets up a venture with a starter product and staff, advances the requested
number of ticks with a fixed seed and prints a periodic status table
followed by a final summary.
"""

import argparse
import logging
import time
from typing import List, Optional

from economy import Simulation, TickReport

logger = logging.getLogger(__name__)


def bootstrap_venture(simulation: Simulation, employees: int, product_price: float, product_cost: float) -> None:
    """Give the venture a starter product and a small team."""
    simulation.launch_product("Starter Product", product_price, product_cost)
    for i in range(employees):
        simulation.hire_employee(f"Employee {i + 1}")


def print_summary(simulation: Simulation, reports: List[TickReport], elapsed: float) -> None:
    venture = simulation.venture
    metrics = simulation.get_economic_metrics()
    progression = simulation.progression_status()
    research = simulation.research_status()

    print()
    print("=" * 80)
    print("FINAL SUMMARY")
    print("=" * 80)
    print(f"Ticks run:            {len(reports)} ({elapsed:.2f}s)")
    if simulation.outcome is not None:
        print(f"Outcome:              {simulation.outcome.message} (tick {simulation.outcome.tick})")
    else:
        print("Outcome:              still running")
    if venture is not None:
        print(f"Cash:                 ${venture.cash:,.2f}")
        print(f"Net worth:            ${venture.net_worth:,.2f}")
        print(f"Market share:         {venture.market_share:.1%}")
        print(f"Reputation:           {venture.reputation:.1f}")
        print(f"Credit score:         {venture.credit_score:.0f}")
        print(f"Employees / products: {len(venture.employees)} / {len(venture.products)}")
        print(f"Completed research:   {len(venture.completed_research)}")
    print(f"Prestige:             {progression.current_prestige}")
    print(f"Achievements:         {sum(a.completed for a in progression.achievements)}"
          f"/{len(progression.achievements)}")
    print(f"Active projects:      {len(research.active_projects)}")
    print(f"Entities in market:   {metrics['total_entities']}")
    print(f"Market concentration: {metrics['market_concentration']:.3f}")

    events = [r.event.kind for r in reports if r.event is not None]
    if events:
        print()
        print("Random events:")
        for kind in sorted(set(events)):
            print(f"  {kind:<24} {events.count(kind)}")


def main(
    num_ticks: int = 365,
    seed: Optional[int] = 42,
    name: str = "My Venture",
    category: str = "General",
    capital: float = 100_000.0,
    employees: int = 3,
    report_every: int = 30,
    competitors: bool = True,
):
    """Run one seeded session and print its progress."""
    print("=" * 80)
    print(f"VENTURESIM ({name}, {category}, {num_ticks} ticks, seed={seed})")
    print("=" * 80)
    print()

    simulation = Simulation(seed=seed)
    simulation.start(name, category, capital=capital, with_competitors=competitors)
    bootstrap_venture(simulation, employees, product_price=100.0, product_cost=50.0)

    print("Tick |         Cash |    Net Worth | Share | Reputation | Credit | Crises")
    print("-" * 80)

    start_time = time.time()
    reports: List[TickReport] = []
    for _ in range(num_ticks):
        report = simulation.step()
        if report is None:
            break
        reports.append(report)

        if report.tick % report_every == 0 or report.outcome is not None:
            venture = simulation.venture
            crises = len(simulation.crisis_status().active_crises)
            print(
                f"{report.tick:4d} | {venture.cash:12,.0f} | {venture.net_worth:12,.0f} | "
                f"{venture.market_share:5.1%} | {venture.reputation:10.1f} | {venture.credit_score:6.0f} | "
                f"{crises:6d}"
            )
        if report.outcome is not None:
            break

    print_summary(simulation, reports, time.time() - start_time)
    return simulation


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Run a VentureSim session.")
    parser.add_argument("--ticks", type=int, default=365, help="Number of ticks to run")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--name", type=str, default="My Venture", help="Venture name")
    parser.add_argument("--category", type=str, default="General", help="Industry / product category")
    parser.add_argument("--capital", type=float, default=100_000.0, help="Starting capital")
    parser.add_argument("--employees", type=int, default=3, help="Starting employees")
    parser.add_argument("--report-every", type=int, default=30, help="Table interval (ticks)")
    parser.add_argument("--no-competitors", action="store_true", help="Run without rival entities")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings")
    args = parser.parse_args()

    if args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    main(
        num_ticks=args.ticks,
        seed=args.seed,
        name=args.name,
        category=args.category,
        capital=args.capital,
        employees=args.employees,
        report_every=args.report_every,
        competitors=not args.no_competitors,
    )
