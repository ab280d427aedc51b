"""
lmreward CLI

Command-line interface for inspecting reward schedules and simulating
an in-memory deployment.

Usage:
    lmreward show-config [--config FILE] [--network NAME] [--json]
    lmreward plan-speeds [--config FILE] [--network NAME]
    lmreward simulate [--config FILE] [--network NAME] [--days N] [--stake AMOUNT]
"""

import json
from typing import Dict, List, Optional

import click
from rich.console import Console
from rich.table import Table

from ..config.loader import LMRewardConfig, load_config, parse_amount
from ..constants import BASE, SECONDS_PER_DAY
from ..exceptions import ConfigError, LMRewardError
from ..logger import set_log_level
from ..ops.deployment import Deployment, build_deployment
from ..ops.operations import daily_to_speed
from ..state import BlockClock
from ..utils.address import derive_address
from ..utils.fixed_point import format_units

console = Console()

SIM_SUPPLY_AMOUNT = 1_000 * BASE
SIM_BORROW_AMOUNT = 100 * BASE


def _load(config_path: Optional[str], network: Optional[str]) -> LMRewardConfig:
    try:
        cfg = load_config(config_path, network=network)
        cfg.validate()
    except ConfigError as e:
        raise click.ClickException(f"Invalid config: {e}")
    set_log_level(cfg.logging.level)
    return cfg


config_option = click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.toml (default: $LMREWARD_CONFIG or ./config.toml)",
)
network_option = click.option(
    "--network", "-n",
    default=None,
    help="Network overlay to merge (config.<network>.toml)",
)


@click.group()
@click.version_option(version="1.0.0", prog_name="lmreward")
def cli():
    """Liquidity-mining reward engine.

    Eligibility-gated lending rewards and BLP staking rewards.
    """
    pass


@cli.command("show-config")
@config_option
@network_option
@click.option("--json", "as_json", is_flag=True, help="Print the resolved config as JSON")
def show_config_cmd(config_path: Optional[str], network: Optional[str], as_json: bool):
    """Print the resolved configuration."""
    cfg = _load(config_path, network)
    if as_json:
        click.echo(json.dumps(cfg.to_dict(), indent=2))
        return

    table = Table(title=f"lmreward config ({cfg.network})")
    table.add_column("Setting")
    table.add_column("Value", overflow="fold")
    table.add_row("threshold_ratio", format_units(cfg.eligibility.threshold_ratio))
    valid = cfg.eligibility.valid_supplies
    table.add_row("valid_supplies", "all markets" if valid.all_markets else ", ".join(valid.symbols) or "-")
    table.add_row("bounty_ratio", format_units(cfg.distributor.bounty_ratio))
    table.add_row("treasury", cfg.distributor.treasury or "(derived)")
    table.add_row("markets", ", ".join(cfg.market_symbols()) or "-")
    table.add_row("pools", ", ".join(p.name for p in cfg.pools) or "-")
    table.add_row("reward tokens", ", ".join(cfg.reward_tokens()) or "-")
    table.add_row("log level", cfg.logging.level)
    console.print(table)


@cli.command("plan-speeds")
@config_option
@network_option
def plan_speeds_cmd(config_path: Optional[str], network: Optional[str]):
    """Show the per-second speeds implied by the daily reward schedule."""
    cfg = _load(config_path, network)
    if not cfg.lending_rewards and not cfg.blp_rewards:
        click.echo("No reward schedules configured.")
        return

    for reward in cfg.lending_rewards:
        table = Table(title=f"{reward.reward_token} lending reward")
        table.add_column("Market")
        table.add_column("Supply / day", justify="right")
        table.add_column("Supply / s (wei)", justify="right")
        table.add_column("Borrow / day", justify="right")
        table.add_column("Borrow / s (wei)", justify="right")
        for symbol, daily in reward.markets.items():
            table.add_row(
                symbol,
                format_units(daily.supply),
                str(daily_to_speed(daily.supply)),
                format_units(daily.borrow),
                str(daily_to_speed(daily.borrow)),
            )
        console.print(table)

    if cfg.blp_rewards:
        table = Table(title="BLP rewards")
        table.add_column("Pool")
        table.add_column("Token")
        table.add_column("Rate / s", justify="right")
        table.add_column("Per day", justify="right")
        for stream in cfg.blp_rewards:
            table.add_row(
                stream.pool, stream.reward_token,
                format_units(stream.rate), format_units(stream.rate * SECONDS_PER_DAY),
            )
        console.print(table)


# ── Simulation ────────────────────────────────────────────────────────

def _run_timeline(deployment: Deployment, stakers: List[str], others: List[str], stake: int, days: int) -> None:
    """Supply on every market, borrow on the first, stake in the first pool, then let time run."""
    owner = deployment.owner
    markets = list(deployment.markets.values())
    for account in stakers + others:
        for market in markets:
            market.mint(account, account, SIM_SUPPLY_AMOUNT)
    if markets:
        for account in stakers + others:
            markets[0].borrow(account, SIM_BORROW_AMOUNT)

    if deployment.pools:
        name, pool = next(iter(deployment.pools.items()))
        lp = deployment.lp_tokens[name]
        for account in stakers:
            lp.mint(owner, account, stake)
            lp.approve(account, pool.address, stake)
            pool.stake(account, account, stake)

    for _ in range(days):
        deployment.clock.advance(SECONDS_PER_DAY)


def _render_simulation(deployment: Deployment, accounts: Dict[str, str]) -> None:
    manager = deployment.reward_manager

    table = Table(title="Eligibility and ledger")
    table.add_column("Account")
    table.add_column("Eligible")
    for symbol in deployment.markets:
        table.add_column(f"{symbol} supply", justify="right")
        table.add_column(f"{symbol} borrow", justify="right")
    for label, account in accounts.items():
        row = [label, "yes" if manager.is_eligible(account) else "no"]
        for market in deployment.markets.values():
            row.append(format_units(manager.eligible_supply(market, account)))
            row.append(format_units(manager.eligible_borrow(market, account)))
        table.add_row(*row)
    console.print(table)

    table = Table(title="Claimed rewards")
    table.add_column("Account")
    for symbol in deployment.reward_tokens:
        table.add_column(symbol, justify="right")
    for label, account in accounts.items():
        table.add_row(
            label,
            *[format_units(token.balance_of(account)) for token in deployment.reward_tokens.values()],
        )
    console.print(table)


@cli.command("simulate")
@config_option
@network_option
@click.option("--days", "-d", default=1, show_default=True, type=click.IntRange(min=0), help="Days to simulate")
@click.option("--stake", default="2000000e18", show_default=True, help="LP amount staked by each staker")
@click.option("--accounts", "num_accounts", default=2, show_default=True, type=click.IntRange(min=2),
              help="Number of accounts; the first half stake BLP")
def simulate_cmd(config_path: Optional[str], network: Optional[str], days: int, stake: str, num_accounts: int):
    """Build an in-memory deployment and run a scripted timeline.

    Every account supplies to each market and borrows from the first one;
    the first half also stake in the first BLP pool. After DAYS days all
    lending and BLP rewards are claimed.
    """
    cfg = _load(config_path, network)
    try:
        stake_amount = parse_amount(stake)
        deployment = build_deployment(cfg, BlockClock())
        accounts = {f"user{i}": derive_address(f"lmreward:sim:user{i}") for i in range(num_accounts)}
        addresses = list(accounts.values())
        half = max(num_accounts // 2, 1)
        _run_timeline(deployment, addresses[:half], addresses[half:], stake_amount, days)

        deployment.reward_manager.claim_all_reward(addresses)
        for blp_reward in deployment.blp_rewards.values():
            for account in addresses:
                blp_reward.get_reward(account, account)
    except LMRewardError as e:
        raise click.ClickException(f"Simulation failed: {e}")

    click.echo(f"Simulated {days} day(s) on network '{cfg.network}'")
    _render_simulation(deployment, accounts)


def main():
    cli()


if __name__ == "__main__":
    main()
