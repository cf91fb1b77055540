# alembic/versions/0001_initial.py
from alembic import op
import sqlalchemy as sa

revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table('apartments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('price_per_night', sa.Numeric(10, 2), nullable=False),
        sa.Column('max_guests', sa.Integer(), nullable=False),
        sa.Column('characteristics', sa.JSON(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('principal_image_index', sa.Integer(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('google_maps_url', sa.Text(), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=False),
        sa.Column('contact_phone', sa.String(length=50), nullable=True),
        sa.Column('whatsapp_number', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_apartments_is_active', 'apartments', ['is_active'])
    op.create_index('ix_apartments_max_guests', 'apartments', ['max_guests'])
    op.create_index('ix_apartments_created_at', 'apartments', ['created_at'])

    op.create_table('bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('apartment_id', sa.Integer(), sa.ForeignKey('apartments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('guest_name', sa.String(length=255), nullable=False),
        sa.Column('guest_email', sa.String(length=255), nullable=False),
        sa.Column('guest_phone', sa.String(length=50), nullable=True),
        sa.Column('check_in', sa.Date(), nullable=False),
        sa.Column('check_out', sa.Date(), nullable=False),
        sa.Column('total_guests', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_bookings_apartment_id', 'bookings', ['apartment_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index('ix_bookings_check_in', 'bookings', ['check_in'])
    op.create_index('ix_bookings_check_out', 'bookings', ['check_out'])

    op.create_table('apartment_availability',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('apartment_id', sa.Integer(), sa.ForeignKey('apartments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_apartment_availability_apartment_id', 'apartment_availability', ['apartment_id'])


def downgrade():
    op.drop_table('apartment_availability')
    op.drop_table('bookings')
    op.drop_table('apartments')
    op.drop_table('users')
