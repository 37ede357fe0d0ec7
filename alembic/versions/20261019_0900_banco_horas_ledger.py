"""Create banco de horas ledger tables

Revision ID: 20261019_0900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '20261019_0900'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


QUANTITY_FIELDS = (
    'baseline',
    'repasse_mes_anterior',
    'saldo_a_utilizar',
    'consumo_chamados',
    'requerimentos',
    'reajustes',
    'consumo_total',
    'saldo',
    'repasse',
    'excedente',
    'valor_a_transportar',
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _empresa_fk():
    return sa.Column(
        'empresa_id',
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey('empresas_clientes.id', ondelete='CASCADE'),
        nullable=False,
    )


def upgrade() -> None:
    # Company contract configuration
    op.create_table(
        'empresas_clientes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('nome', sa.String(255), nullable=False),
        sa.Column('modo_cobranca', sa.String(10), nullable=False, server_default='horas'),
        sa.Column('baseline_horas', sa.Integer, nullable=True),
        sa.Column('baseline_tickets', sa.Integer, nullable=True),
        sa.Column('percentual_repasse_mensal', sa.Numeric(5, 2), nullable=True),
        sa.Column('inicio_vigencia', sa.Date, nullable=False),
        sa.Column('periodo_apuracao', sa.Integer, nullable=True),
        sa.Column('possui_repasse_especial', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('ciclo_atual', sa.Integer, nullable=False, server_default='1'),
        sa.Column('ciclos_para_zerar', sa.Integer, nullable=False, server_default='1'),
        sa.Column('ativo', sa.Boolean, nullable=False, server_default=sa.text('true')),
        *_timestamps(),
        sa.CheckConstraint("modo_cobranca IN ('horas', 'tickets')", name='ck_empresas_clientes_modo_cobranca_valido'),
        sa.CheckConstraint('periodo_apuracao BETWEEN 1 AND 12', name='ck_empresas_clientes_periodo_apuracao_valido'),
        sa.CheckConstraint(
            'percentual_repasse_mensal BETWEEN 0 AND 100',
            name='ck_empresas_clientes_percentual_repasse_valido',
        ),
    )

    # Excess rates
    op.create_table(
        'taxas_clientes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _empresa_fk(),
        sa.Column('vigencia_inicio', sa.Date, nullable=False),
        sa.Column('vigencia_fim', sa.Date, nullable=True),
        sa.Column('valor_hora_excedente', sa.Numeric(18, 2), nullable=True),
        sa.Column('valor_ticket_excedente', sa.Numeric(18, 2), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_taxas_clientes_empresa_id', 'taxas_clientes', ['empresa_id'])

    # Monthly consumption
    op.create_table(
        'banco_horas_consumo',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _empresa_fk(),
        sa.Column('mes', sa.Integer, nullable=False),
        sa.Column('ano', sa.Integer, nullable=False),
        sa.Column('consumo_chamados_horas', sa.Integer, nullable=True),
        sa.Column('consumo_chamados_tickets', sa.Integer, nullable=True),
        sa.Column('requerimentos_horas', sa.Integer, nullable=True),
        sa.Column('requerimentos_tickets', sa.Integer, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('empresa_id', 'mes', 'ano', name='uq_banco_horas_consumo_periodo'),
    )

    # Manual adjustments
    op.create_table(
        'banco_horas_reajustes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _empresa_fk(),
        sa.Column('mes', sa.Integer, nullable=False),
        sa.Column('ano', sa.Integer, nullable=False),
        sa.Column('valor_horas', sa.Integer, nullable=True),
        sa.Column('valor_tickets', sa.Integer, nullable=True),
        sa.Column('tipo', sa.String(10), nullable=False),
        sa.Column('observacao', sa.Text, nullable=False),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('ativo', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('motivo_inativacao', sa.Text, nullable=True),
        sa.Column('inativado_por', sa.String(255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("tipo IN ('entrada', 'saida')", name='ck_banco_horas_reajustes_tipo_valido'),
    )
    op.create_index('ix_banco_horas_reajustes_periodo', 'banco_horas_reajustes', ['empresa_id', 'ano', 'mes'])

    # Allocations
    op.create_table(
        'banco_horas_alocacoes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        _empresa_fk(),
        sa.Column('nome', sa.String(255), nullable=False),
        sa.Column('percentual_baseline', sa.Numeric(5, 2), nullable=False),
        sa.Column('ativo', sa.Boolean, nullable=False, server_default=sa.text('true')),
        *_timestamps(),
        sa.CheckConstraint(
            'percentual_baseline BETWEEN 0 AND 100',
            name='ck_banco_horas_alocacoes_percentual_baseline_valido',
        ),
    )
    op.create_index('ix_banco_horas_alocacoes_empresa_id', 'banco_horas_alocacoes', ['empresa_id'])

    # Calculation versions (append-only)
    quantity_columns = []
    for field in QUANTITY_FIELDS:
        quantity_columns.append(sa.Column(f'{field}_horas', sa.Integer, nullable=True))
        quantity_columns.append(sa.Column(f'{field}_tickets', sa.Integer, nullable=True))

    op.create_table(
        'banco_horas_calculos',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('calculo_id', postgresql.UUID(as_uuid=True), nullable=False),
        _empresa_fk(),
        sa.Column('mes', sa.Integer, nullable=False),
        sa.Column('ano', sa.Integer, nullable=False),
        sa.Column('versao', sa.Integer, nullable=False),
        sa.Column('modo', sa.String(10), nullable=False),
        *quantity_columns,
        sa.Column('valor_a_faturar', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('taxa_hora_utilizada', sa.Numeric(18, 2), nullable=True),
        sa.Column('percentual_repasse_mensal', sa.Numeric(5, 2), nullable=False),
        sa.Column('is_fim_periodo', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('observacao', sa.Text, nullable=True),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('empresa_id', 'mes', 'ano', 'versao', name='uq_banco_horas_calculos_periodo_versao'),
        sa.UniqueConstraint('calculo_id', 'versao', name='uq_banco_horas_calculos_calculo_versao'),
    )
    op.create_index('ix_banco_horas_calculos_calculo_id', 'banco_horas_calculos', ['calculo_id'])
    op.create_index('ix_banco_horas_calculos_periodo', 'banco_horas_calculos', ['empresa_id', 'ano', 'mes'])

    # Version history (append-only)
    op.create_table(
        'banco_horas_versoes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('calculo_id', postgresql.UUID(as_uuid=True), nullable=False),
        _empresa_fk(),
        sa.Column('mes', sa.Integer, nullable=False),
        sa.Column('ano', sa.Integer, nullable=False),
        sa.Column('versao_anterior', sa.Integer, nullable=False),
        sa.Column('versao_nova', sa.Integer, nullable=False),
        sa.Column('tipo_mudanca', sa.String(20), nullable=False),
        sa.Column('dados_anteriores', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('dados_novos', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('motivo', sa.Text, nullable=False),
        sa.Column('reajuste_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('calculo_id', 'versao_nova', name='uq_banco_horas_versoes_calculo_versao'),
        sa.CheckConstraint('versao_nova = versao_anterior + 1', name='ck_banco_horas_versoes_versao_contigua'),
        sa.CheckConstraint(
            "tipo_mudanca IN ('reajuste', 'recalculo', 'correcao')",
            name='ck_banco_horas_versoes_tipo_mudanca_valido',
        ),
    )
    op.create_index('ix_banco_horas_versoes_calculo_id', 'banco_horas_versoes', ['calculo_id'])
    op.create_index('ix_banco_horas_versoes_periodo', 'banco_horas_versoes', ['empresa_id', 'ano', 'mes'])


def downgrade() -> None:
    op.drop_table('banco_horas_versoes')
    op.drop_table('banco_horas_calculos')
    op.drop_table('banco_horas_alocacoes')
    op.drop_table('banco_horas_reajustes')
    op.drop_table('banco_horas_consumo')
    op.drop_table('taxas_clientes')
    op.drop_table('empresas_clientes')
