"""
Banco de Horas - Test Configuration

Pytest fixtures and configuration.
"""

import os
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_async_session
from app.models.banco_horas import (
    BancoHorasAlocacao,
    BancoHorasConsumo,
    EmpresaCliente,
    TaxaCliente,
)
from app.services.banco_horas import reajuste_service
from main import app


# In-memory SQLite by default; point TEST_DATABASE_URL at PostgreSQL to run
# the same suite against the production dialect
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

if TEST_DATABASE_URL.startswith("sqlite"):
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, pool_pre_ping=True)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def reset_cascade_locks():
    """Each test starts without company locks from earlier tests."""
    reajuste_service._locks_por_empresa.clear()
    yield
    reajuste_service._locks_por_empresa.clear()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def outra_sessao(db_session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Second session on the same database, for concurrent callers."""
    async with TestSessionLocal() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

def horas(h: int, m: int = 0) -> int:
    """Minutes for an H:MM duration."""
    return h * 60 + m


@pytest_asyncio.fixture
async def empresa_horas(db_session: AsyncSession) -> EmpresaCliente:
    """
    Hours-billed company on a quarterly window starting January 2024.

    Baseline 160:00, 50% monthly carry-over, R$ 150,00 per excess hour.
    Consumption: Jan 150:00 + 30:00, Feb 140:00 + 10:00, Mar 170:00 + 0:00.
    """
    empresa = EmpresaCliente(
        id=uuid4(),
        nome="Acme Suporte Ltda",
        modo_cobranca="horas",
        baseline_horas=horas(160),
        percentual_repasse_mensal=Decimal("50"),
        inicio_vigencia=date(2024, 1, 1),
        periodo_apuracao=3,
    )
    db_session.add(empresa)
    db_session.add(TaxaCliente(
        id=uuid4(),
        empresa_id=empresa.id,
        vigencia_inicio=date(2023, 1, 1),
        vigencia_fim=None,
        valor_hora_excedente=Decimal("150.00"),
    ))
    for mes, consumo, requerimentos in ((1, 150, 30), (2, 140, 10), (3, 170, 0)):
        db_session.add(BancoHorasConsumo(
            id=uuid4(),
            empresa_id=empresa.id,
            mes=mes,
            ano=2024,
            consumo_chamados_horas=horas(consumo),
            requerimentos_horas=horas(requerimentos),
        ))
    await db_session.commit()
    return empresa


@pytest_asyncio.fixture
async def empresa_tickets(db_session: AsyncSession) -> EmpresaCliente:
    """
    Ticket-billed company on a quarterly window starting January 2024.

    Baseline 50 tickets, 50% carry-over, R$ 80,00 per excess ticket.
    """
    empresa = EmpresaCliente(
        id=uuid4(),
        nome="Beta Sistemas SA",
        modo_cobranca="tickets",
        baseline_tickets=50,
        percentual_repasse_mensal=Decimal("50"),
        inicio_vigencia=date(2024, 1, 1),
        periodo_apuracao=3,
    )
    db_session.add(empresa)
    db_session.add(TaxaCliente(
        id=uuid4(),
        empresa_id=empresa.id,
        vigencia_inicio=date(2024, 1, 1),
        valor_ticket_excedente=Decimal("80.00"),
    ))
    for mes, consumo, requerimentos in ((1, 45, 8), (2, 40, 0), (3, 60, 5)):
        db_session.add(BancoHorasConsumo(
            id=uuid4(),
            empresa_id=empresa.id,
            mes=mes,
            ano=2024,
            consumo_chamados_tickets=consumo,
            requerimentos_tickets=requerimentos,
        ))
    await db_session.commit()
    return empresa


@pytest_asyncio.fixture
async def alocacoes_horas(db_session: AsyncSession, empresa_horas: EmpresaCliente):
    """Three active allocations (50/30/20) and one inactive."""
    alocacoes = [
        BancoHorasAlocacao(id=uuid4(), empresa_id=empresa_horas.id, nome="Financeiro", percentual_baseline=Decimal("50")),
        BancoHorasAlocacao(id=uuid4(), empresa_id=empresa_horas.id, nome="Logistica", percentual_baseline=Decimal("30")),
        BancoHorasAlocacao(id=uuid4(), empresa_id=empresa_horas.id, nome="RH", percentual_baseline=Decimal("20")),
        BancoHorasAlocacao(
            id=uuid4(), empresa_id=empresa_horas.id, nome="Antigo", percentual_baseline=Decimal("40"), ativo=False
        ),
    ]
    db_session.add_all(alocacoes)
    await db_session.commit()
    return alocacoes
