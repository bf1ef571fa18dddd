#!/usr/bin/env python3
"""Tests for two-phase is-winner handle discovery."""

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from dake.exceptions import SimulationFailed
from dake.program import Position, allowance_address
from dake.services.ledger import LedgerRPCError, SimulationResult
from dake.settlement import HandleDiscovery

from factories import PROGRAM, World, position_bytes


def _position(world: World) -> Position:
    return Position.from_account_data(world.position, world.ledger.accounts[str(world.position)])


def _simulated(world: World, handle: int) -> SimulationResult:
    return SimulationResult(
        accounts=[position_bytes(world.market, world.wallet.pubkey, is_winner_handle=handle)]
    )


def test_simulate_then_commit_with_allowance() -> None:
    world = World()
    world.ledger.simulation_results.append(_simulated(world, 12345))
    world.ledger.on_send = lambda _ixs: world.set_position(is_winner_handle=12345)
    discovery = HandleDiscovery(world.ledger, world.wallet, PROGRAM)

    handle = asyncio.run(discovery.discover_handle(_position(world)))

    assert handle == 12345
    assert len(world.ledger.simulations) == 1
    assert len(world.ledger.submissions) == 1

    simulated_ix = world.ledger.simulations[0][0]
    committed_ix = world.ledger.submissions[0][0]
    assert len(simulated_ix.accounts) == 5
    assert len(committed_ix.accounts) == 7

    allowance, _ = allowance_address(12345, world.wallet.pubkey, PROGRAM.oracle_program_pubkey)
    assert committed_ix.accounts[5].pubkey == allowance
    assert committed_ix.accounts[6].pubkey == world.wallet.pubkey


def test_checked_position_is_only_reread() -> None:
    world = World(is_winner_handle=777)
    discovery = HandleDiscovery(world.ledger, world.wallet, PROGRAM)

    async def run() -> tuple:
        first = await discovery.discover_handle(_position(world))
        second = await discovery.discover_handle(_position(world))
        return first, second

    assert asyncio.run(run()) == (777, 777)
    assert world.ledger.simulations == []
    assert world.ledger.submissions == []


def test_stale_local_copy_still_uses_ledger_handle() -> None:
    world = World()
    stale = _position(world)
    world.set_position(is_winner_handle=55)
    discovery = HandleDiscovery(world.ledger, world.wallet, PROGRAM)

    assert asyncio.run(discovery.discover_handle(stale)) == 55
    assert world.ledger.simulations == []


def test_zero_simulated_handle_means_not_yet_available() -> None:
    world = World()
    world.ledger.simulation_results.append(_simulated(world, 0))
    discovery = HandleDiscovery(world.ledger, world.wallet, PROGRAM)

    assert asyncio.run(discovery.discover_handle(_position(world))) is None
    assert world.ledger.submissions == []


def test_simulation_error_raises_simulation_failed() -> None:
    world = World()
    err = {"InstructionError": [0, {"Custom": 6002}]}
    world.ledger.simulation_results.append(
        SimulationResult(err=err, logs=["Program log: MarketNotResolved"])
    )
    discovery = HandleDiscovery(world.ledger, world.wallet, PROGRAM)

    with pytest.raises(SimulationFailed) as exc_info:
        asyncio.run(discovery.discover_handle(_position(world)))

    assert exc_info.value.err == err
    assert exc_info.value.logs == ["Program log: MarketNotResolved"]
    assert world.ledger.submissions == []


def test_simulation_rpc_error_raises_simulation_failed() -> None:
    world = World()

    async def reject(*_args, **_kwargs):
        raise LedgerRPCError(-32002, "simulation failed", {"err": "AccountNotFound", "logs": []})

    world.ledger.simulate_transaction = reject
    discovery = HandleDiscovery(world.ledger, world.wallet, PROGRAM)

    with pytest.raises(SimulationFailed) as exc_info:
        asyncio.run(discovery.discover_handle(_position(world)))
    assert exc_info.value.err == "AccountNotFound"


def test_grant_access_targets_stored_handle() -> None:
    world = World(is_winner_handle=4242)
    discovery = HandleDiscovery(world.ledger, world.wallet, PROGRAM)

    signature = asyncio.run(discovery.grant_access(_position(world)))

    assert signature == "sig1"
    ix = world.ledger.submissions[0][0]
    allowance, _ = allowance_address(4242, world.wallet.pubkey, PROGRAM.oracle_program_pubkey)
    assert ix.accounts[4].pubkey == allowance
