"""partner program schema

Revision ID: a1f3c9e2b7d4
Revises:
Create Date: 2026-10-19 10:12:31.402118
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1f3c9e2b7d4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


partner_status = sa.Enum("pending", "approved", "suspended", name="partner_status")
partner_tier = sa.Enum("growth", "partner", name="partner_tier")
subscription_status = sa.Enum("active", "past_due", "canceled", "inactive", name="subscription_status")
entry_fee_status = sa.Enum("none", "pending", "completed", name="entry_fee_status")
kyc_status = sa.Enum("none", "pending", "approved", "rejected", name="kyc_status")
payment_status = sa.Enum("PENDING", "PAID", "FAILED", "REFUNDED", name="paymentstatus")
commission_status = sa.Enum("pending", "calculated", "paid", "reversed", name="commission_status")
entry_fee_payment_status = sa.Enum("pending", "completed", "failed", name="entry_fee_payment_status")
referral_reward_status = sa.Enum("pending", "paid", "reversed", name="referral_reward_status")
withdrawal_status = sa.Enum(
    "pending", "approved", "processing", "completed", "rejected", "cancelled", name="withdrawal_status"
)
ledger_entry_kind = sa.Enum(
    "commission",
    "referral_reward",
    "withdrawal_reserve",
    "withdrawal_release",
    "commission_reversal",
    "referral_reversal",
    name="ledger_entry_kind",
)

ACTIVE_WITHDRAWAL_WHERE = sa.text("status IN ('pending', 'approved', 'processing')")


def upgrade() -> None:
    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_superadmin", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_admins_id", "admins", ["id"])
    op.create_index("ix_admins_email", "admins", ["email"], unique=True)

    op.create_table(
        "partners",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("referral_code", sa.String(length=20), nullable=False),
        sa.Column("status", partner_status, nullable=False),
        sa.Column("tier", partner_tier, nullable=False),
        sa.Column("subscription_status", subscription_status, nullable=False),
        sa.Column("subscription_id", sa.String(length=255), nullable=True),
        sa.Column("subscription_current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("entry_fee_status", entry_fee_status, nullable=False),
        sa.Column("referrer_id", sa.Integer(), sa.ForeignKey("partners.id", ondelete="SET NULL"), nullable=True),
        sa.Column("kyc_status", kyc_status, nullable=False),
        sa.Column("kyc_document_type", sa.String(length=50), nullable=True),
        sa.Column("bank_name", sa.String(length=150), nullable=True),
        sa.Column("bank_branch", sa.String(length=150), nullable=True),
        sa.Column("bank_account_type", sa.String(length=30), nullable=True),
        sa.Column("bank_account_number", sa.String(length=50), nullable=True),
        sa.Column("bank_account_holder", sa.String(length=150), nullable=True),
        sa.Column("available_balance", sa.Numeric(12, 0), server_default=sa.text("0"), nullable=False),
        sa.Column("total_earned", sa.Numeric(12, 0), server_default=sa.text("0"), nullable=False),
        sa.Column("total_withdrawn", sa.Numeric(12, 0), server_default=sa.text("0"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.CheckConstraint("available_balance >= 0", name="ck_partners_available_balance_non_negative"),
    )
    op.create_index("ix_partners_id", "partners", ["id"])
    op.create_index("ix_partners_referral_code", "partners", ["referral_code"], unique=True)
    op.create_index("ix_partners_referrer_id", "partners", ["referrer_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("amount", sa.Numeric(12, 0), nullable=False),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=True),
        sa.Column("is_first_order_for_customer", sa.Boolean(), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("commission_bonus_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("commission_amount", sa.Numeric(12, 0), nullable=True),
        sa.Column("commission_status", commission_status, nullable=False),
        sa.Column("commission_calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_partner_id", "bookings", ["partner_id"])

    op.create_table(
        "partner_entry_fees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 0), nullable=False),
        sa.Column("status", entry_fee_payment_status, nullable=False),
        sa.Column("stripe_session_id", sa.String(length=255), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_partner_entry_fees_id", "partner_entry_fees", ["id"])
    op.create_index("ix_partner_entry_fees_partner_id", "partner_entry_fees", ["partner_id"])

    op.create_table(
        "referral_rewards",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("referrer_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("referee_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False, unique=True),
        sa.Column("reward_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("reward_amount", sa.Numeric(12, 0), nullable=False),
        sa.Column("status", referral_reward_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_referral_rewards_id", "referral_rewards", ["id"])
    op.create_index("ix_referral_rewards_referrer_id", "referral_rewards", ["referrer_id"])

    op.create_table(
        "withdrawal_requests",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 0), nullable=False),
        sa.Column("status", withdrawal_status, nullable=False),
        sa.Column("bank_name", sa.String(length=150), nullable=True),
        sa.Column("bank_branch", sa.String(length=150), nullable=True),
        sa.Column("account_type", sa.String(length=30), nullable=True),
        sa.Column("account_number", sa.String(length=50), nullable=True),
        sa.Column("account_holder", sa.String(length=150), nullable=True),
        sa.Column("review_note", sa.String(length=500), nullable=True),
        sa.Column("reviewed_by", sa.Integer(), sa.ForeignKey("admins.id"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_reference", sa.String(length=100), nullable=True),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_withdrawal_requests_id", "withdrawal_requests", ["id"])
    op.create_index("ix_withdrawal_requests_partner_id", "withdrawal_requests", ["partner_id"])
    op.create_index(
        "uq_withdrawal_requests_active_partner",
        "withdrawal_requests",
        ["partner_id"],
        unique=True,
        postgresql_where=ACTIVE_WITHDRAWAL_WHERE,
    )

    op.create_table(
        "partner_ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("kind", ledger_entry_kind, nullable=False),
        sa.Column("amount", sa.Numeric(12, 0), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("withdrawal_id", sa.Integer(), sa.ForeignKey("withdrawal_requests.id"), nullable=True),
        sa.Column("referral_reward_id", sa.Integer(), sa.ForeignKey("referral_rewards.id"), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_partner_ledger_entries_id", "partner_ledger_entries", ["id"])
    op.create_index("ix_partner_ledger_entries_partner_id", "partner_ledger_entries", ["partner_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("admin_id", sa.Integer(), nullable=True),
        sa.Column("admin_email", sa.String(length=255), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("partner_ledger_entries")
    op.drop_index("uq_withdrawal_requests_active_partner", table_name="withdrawal_requests")
    op.drop_table("withdrawal_requests")
    op.drop_table("referral_rewards")
    op.drop_table("partner_entry_fees")
    op.drop_table("bookings")
    op.drop_table("partners")
    op.drop_table("admins")

    bind = op.get_bind()
    for enum_type in (
        ledger_entry_kind,
        withdrawal_status,
        referral_reward_status,
        entry_fee_payment_status,
        commission_status,
        payment_status,
        kyc_status,
        entry_fee_status,
        subscription_status,
        partner_tier,
        partner_status,
    ):
        enum_type.drop(bind, checkfirst=True)
