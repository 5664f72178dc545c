"""create initial schema

Revision ID: 5b1f0c2d7a93
Revises:
Create Date: 2026-10-19 09:12:44.108392

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5b1f0c2d7a93'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Step 1: Create the function (required before triggers)
    op.execute('''
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ language 'plpgsql'
    ''')

    # Step 2: Create tables
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email VARCHAR(255) NOT NULL UNIQUE,
            username VARCHAR(100) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            role VARCHAR(20) NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin', 'moderator')),
            status VARCHAR(20) NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'active')),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            deleted_at TIMESTAMP WITH TIME ZONE
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS otps (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            code VARCHAR(6) NOT NULL CHECK (code ~ '^[0-9]{6}$'),
            expires_at TIMESTAMP WITH TIME ZONE NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS revoked_refresh_tokens (
            jti VARCHAR(64) PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            expires_at TIMESTAMP WITH TIME ZONE NOT NULL,
            revoked_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_profiles (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
            first_name VARCHAR(100),
            last_name VARCHAR(100),
            phone_number VARCHAR(32),
            address VARCHAR(255),
            avatar_url VARCHAR(512),
            status_message VARCHAR(255),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS chats (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            type VARCHAR(10) NOT NULL CHECK (type IN ('private', 'group')),
            name VARCHAR(255),
            owner_id UUID REFERENCES users(id),
            pair_key VARCHAR(80) UNIQUE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CHECK (type = 'private' OR name IS NOT NULL),
            CHECK (type = 'group' OR pair_key IS NOT NULL)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_participants (
            chat_id UUID NOT NULL REFERENCES chats(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            PRIMARY KEY (chat_id, user_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            chat_id UUID NOT NULL REFERENCES chats(id) ON DELETE CASCADE,
            sender_id UUID NOT NULL REFERENCES users(id),
            content TEXT NOT NULL,
            type VARCHAR(10) NOT NULL DEFAULT 'text' CHECK (type IN ('text', 'image', 'video', 'file')),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            deleted_at TIMESTAMP WITH TIME ZONE
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS message_receipts (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            message_id UUID NOT NULL REFERENCES messages(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES users(id),
            status VARCHAR(10) NOT NULL DEFAULT 'delivered' CHECK (status IN ('delivered', 'read')),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT uq_message_receipts_user UNIQUE (message_id, user_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS calls (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            chat_id UUID REFERENCES chats(id) ON DELETE SET NULL,
            caller_id UUID NOT NULL REFERENCES users(id),
            receiver_id UUID NOT NULL REFERENCES users(id),
            status VARCHAR(20) NOT NULL DEFAULT 'ongoing' CHECK (status IN ('ongoing', 'ended', 'missed', 'rejected')),
            start_time TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            end_time TIMESTAMP WITH TIME ZONE,
            CHECK (caller_id <> receiver_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS active_call_slots (
            user_id UUID PRIMARY KEY REFERENCES users(id),
            call_id UUID NOT NULL REFERENCES calls(id) ON DELETE CASCADE
        )
    """)

    # Step 3: Create indexes
    op.execute('CREATE INDEX IF NOT EXISTS idx_otps_user_code ON otps(user_id, code)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_otps_expires_at ON otps(expires_at)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_chat_participants_user ON chat_participants(user_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_messages_chat_created ON messages(chat_id, created_at DESC)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_calls_caller ON calls(caller_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_calls_receiver ON calls(receiver_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_active_call_slots_call ON active_call_slots(call_id)')
    # At most one ongoing call per chat
    op.execute("CREATE UNIQUE INDEX IF NOT EXISTS uq_calls_ongoing_chat ON calls(chat_id) WHERE status = 'ongoing'")

    # Step 4: Create triggers (only after tables exist)
    for table in ('users', 'user_profiles', 'chats', 'messages', 'message_receipts'):
        op.execute(f'''
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
        ''')


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'active_call_slots',
        'calls',
        'message_receipts',
        'messages',
        'chat_participants',
        'chats',
        'user_profiles',
        'revoked_refresh_tokens',
        'otps',
        'users',
    ):
        op.execute(f'DROP TABLE IF EXISTS {table} CASCADE')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
