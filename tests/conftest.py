"""
Pytest configuration and shared fixtures for claim service tests.
"""

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")

from collections.abc import AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from token_claim.crypto.encoding import normalize_address
from token_claim.crypto.merkle import compute_leaf_hash, hash_pair
from token_claim.db.session import build_engine, build_session_factory, ensure_schema
from token_claim.services.claim_service import ClaimService

ADMIN = normalize_address("0xa11ce00000000000000000000000000000000001")
TREASURY = normalize_address("0x7ea5000000000000000000000000000000000002")
TOKEN = normalize_address("0x70ce000000000000000000000000000000000003")
OTHER_TOKEN = normalize_address("0x70ce000000000000000000000000000000000004")
ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"
CAROL = "0x3333333333333333333333333333333333333333"
MALLORY = "0x4444444444444444444444444444444444444444"

ONE_TOKEN = 10**18
START_TIME = 1_700_000_000


class FakeClock:
    """Settable unix clock."""

    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class SortedPairTree:
    """
    Test-only tree builder using sorted-pair hashing.

    Matches the layout of common off-chain airdrop tooling: leaves in the
    given order, children combined smaller-first, an unpaired last node
    promoted to the next level unchanged.
    """

    def __init__(self, leaves: list[bytes]) -> None:
        if not leaves:
            raise ValueError("Cannot build tree from empty leaves")
        self.leaves = list(leaves)
        self.levels = [self.leaves]
        level = self.leaves
        while len(level) > 1:
            parents = []
            for i in range(0, len(level), 2):
                if i + 1 < len(level):
                    parents.append(hash_pair(level[i], level[i + 1]))
                else:
                    parents.append(level[i])
            self.levels.append(parents)
            level = parents

    @classmethod
    def from_allocations(cls, allocations: list[tuple[str, int]]) -> "SortedPairTree":
        return cls([compute_leaf_hash(recipient, amount) for recipient, amount in allocations])

    @property
    def root(self) -> bytes:
        return self.levels[-1][0]

    @property
    def hex_root(self) -> str:
        return "0x" + self.root.hex()

    def proof(self, position: int) -> list[bytes]:
        proof = []
        for level in self.levels[:-1]:
            sibling = position ^ 1
            if sibling < len(level):
                proof.append(level[sibling])
            position //= 2
        return proof

    def hex_proof(self, position: int) -> list[str]:
        return ["0x" + element.hex() for element in self.proof(position)]


@pytest.fixture
def tree_factory() -> type[SortedPairTree]:
    """Off-chain tree builder for generating roots and proofs."""
    return SortedPairTree


@pytest.fixture
def allocations() -> list[tuple[str, int]]:
    """Airdrop list: three recipients with one token each."""
    return [(ALICE, ONE_TOKEN), (BOB, ONE_TOKEN), (CAROL, ONE_TOKEN)]


@pytest.fixture
def airdrop(allocations: list[tuple[str, int]]) -> SortedPairTree:
    """Tree committed for the sample airdrop list."""
    return SortedPairTree.from_allocations(allocations)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the claim schema."""
    engine = build_engine("sqlite+aiosqlite://")
    await ensure_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(db_engine)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def claim_service(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FakeClock,
) -> ClaimService:
    """Claim service over the in-memory database."""
    return ClaimService(
        session_factory=session_factory,
        administrator=ADMIN,
        treasury=TREASURY,
        clock=clock,
    )


@pytest.fixture
async def funded_service(claim_service: ClaimService) -> ClaimService:
    """Claim service whose treasury holds 100 tokens."""
    await claim_service.deposit(ADMIN, TOKEN, 100 * ONE_TOKEN)
    return claim_service


@pytest.fixture
def proof_for(
    airdrop: SortedPairTree,
    allocations: list[tuple[str, int]],
) -> Callable[[str], list[bytes]]:
    """Proof lookup by recipient in the sample airdrop."""
    positions = {recipient: i for i, (recipient, _) in enumerate(allocations)}

    def _proof(recipient: str) -> list[bytes]:
        return airdrop.proof(positions[recipient])

    return _proof
