from __future__ import annotations

import pytest

from zclpoke.core.model import ClusterInfo, MatchRules, TargetProfile
from zclpoke.transports.simulated import SimulatedAttribute, SimulatedDevice, SimulatedEndpoint

CLUSTER = "manuSpecificLumi"


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


def make_target(**overrides) -> TargetProfile:
    fields = dict(
        id="lumi_test",
        name="Lumi Test",
        match=MatchRules(models=("lumi.test.plug",)),
        cluster=CLUSTER,
        manufacturer_code=0x115F,
        known_attributes={0x0515: "Mode"},
        write_history_max=20,
        pacing_delay_ms=50,
    )
    fields.update(overrides)
    return TargetProfile(**fields)


def make_device() -> SimulatedDevice:
    ep1 = SimulatedEndpoint(
        1,
        input_clusters=(ClusterInfo(0, "genBasic"), ClusterInfo(0xFCC0, CLUSTER)),
        output_clusters=(),
        attributes={
            CLUSTER: {
                0x0515: SimulatedAttribute(value=10),
                0x0516: SimulatedAttribute(value=300),
                0x0517: SimulatedAttribute(unsupported=True),
                0x0518: SimulatedAttribute(value=bytes.fromhex("0101030bff")),
                0x0519: SimulatedAttribute(value=1, write_only=True),
            }
        },
    )
    ep2 = SimulatedEndpoint(2, attributes={CLUSTER: {0x0515: SimulatedAttribute(value=1)}})
    return SimulatedDevice("lumi.test.plug", [ep1, ep2])


@pytest.fixture
def target() -> TargetProfile:
    return make_target()


@pytest.fixture
def device() -> SimulatedDevice:
    return make_device()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture(name="make_target")
def make_target_fixture():
    return make_target
