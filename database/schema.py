"""Postgres schema applied as a Supabase migration.

Kept as SQL text so migrations and the repositories can be reviewed side by
side. The functions at the bottom are called through ``db.rpc(...)`` and hold
every update that has to be atomic under concurrent requests.
"""

TABLES = """
CREATE TABLE IF NOT EXISTS stores (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    name TEXT NOT NULL,
    url TEXT,
    api_key TEXT,                           -- OnSend WhatsApp API key
    webhook_key TEXT UNIQUE,                -- X-API-Key sent by the WordPress plugin
    whatsapp_interval INTEGER NOT NULL DEFAULT 30 CHECK (whatsapp_interval IN (30, 60)),
    woocommerce_url TEXT,
    woocommerce_consumer_key TEXT,
    woocommerce_consumer_secret TEXT,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS customers (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    store_id UUID NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    first_name TEXT,
    last_name TEXT,
    email TEXT,
    phone TEXT NOT NULL,
    address_line1 TEXT,
    address_line2 TEXT,
    city TEXT,
    state TEXT,
    postcode TEXT,
    country TEXT,
    total_spent NUMERIC(12, 2) NOT NULL DEFAULT 0,
    orders_count INTEGER NOT NULL DEFAULT 0,
    last_order_date TIMESTAMPTZ,
    last_order_amount NUMERIC(12, 2) DEFAULT 0,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ DEFAULT now(),
    UNIQUE (store_id, phone)
);

CREATE INDEX IF NOT EXISTS idx_customers_store_spent ON customers(store_id, total_spent);

CREATE TABLE IF NOT EXISTS loyalty_stamp_cards (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    store_id UUID NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    promotion_name TEXT NOT NULL,
    tagline TEXT,
    min_spend_per_stamp NUMERIC(12, 2) NOT NULL DEFAULT 0,
    total_stamps INTEGER NOT NULL CHECK (total_stamps > 0),
    reward TEXT,
    terms TEXT,
    start_date DATE,
    end_date DATE,
    is_active BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS loyalty_points_config (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    store_id UUID NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    points_per_rm NUMERIC(10, 4) NOT NULL CHECK (points_per_rm >= 0),
    min_spend NUMERIC(12, 2) NOT NULL DEFAULT 0,
    reward_description TEXT,
    terms TEXT,
    start_date DATE,
    end_date DATE,
    is_active BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS loyalty_cards (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    store_id UUID NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    customer_id UUID NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    stamps INTEGER NOT NULL DEFAULT 0 CHECK (stamps >= 0),   -- no upper bound: may exceed total_stamps
    points INTEGER NOT NULL DEFAULT 0 CHECK (points >= 0),
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ DEFAULT now(),
    UNIQUE (store_id, customer_id)
);

CREATE TABLE IF NOT EXISTS lucky_draw_campaigns (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    store_id UUID NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT,
    min_spend NUMERIC(12, 2) NOT NULL DEFAULT 0,
    start_date DATE NOT NULL,
    end_date DATE NOT NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    is_ended BOOLEAN NOT NULL DEFAULT FALSE,
    winner_message TEXT,
    created_at TIMESTAMPTZ DEFAULT now(),
    CHECK (end_date >= start_date)
);

CREATE TABLE IF NOT EXISTS lucky_draw_prizes (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    campaign_id UUID NOT NULL REFERENCES lucky_draw_campaigns(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT,
    quantity INTEGER NOT NULL CHECK (quantity > 0),
    remaining_quantity INTEGER NOT NULL,
    probability NUMERIC(5, 2) NOT NULL CHECK (probability >= 0 AND probability <= 100),
    sort_order INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ DEFAULT now(),
    CHECK (remaining_quantity >= 0 AND remaining_quantity <= quantity)
);

CREATE TABLE IF NOT EXISTS lucky_draw_entries (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    campaign_id UUID NOT NULL REFERENCES lucky_draw_campaigns(id) ON DELETE CASCADE,
    customer_id UUID NOT NULL REFERENCES customers(id),
    prize_id UUID NOT NULL REFERENCES lucky_draw_prizes(id),
    is_winner BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS whatsapp_followup_flows (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    store_id UUID NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    trigger_type TEXT NOT NULL CHECK (trigger_type IN ('new_customer', 'pending_payment', 'abandoned_cart')),
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS whatsapp_followup_steps (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    flow_id UUID NOT NULL REFERENCES whatsapp_followup_flows(id) ON DELETE CASCADE,
    delay_days INTEGER NOT NULL DEFAULT 0,
    delay_hours INTEGER NOT NULL DEFAULT 0,
    message TEXT NOT NULL,
    step_order INTEGER NOT NULL,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ DEFAULT now()
);

CREATE TABLE IF NOT EXISTS whatsapp_followup_jobs (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    store_id UUID NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
    customer_id UUID NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    step_id UUID REFERENCES whatsapp_followup_steps(id) ON DELETE SET NULL,
    message TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'scheduled', 'sent', 'failed')),
    scheduled_for TIMESTAMPTZ NOT NULL,
    error_message TEXT,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_followup_jobs_due ON whatsapp_followup_jobs(status, scheduled_for);
"""

FUNCTIONS = """
-- Claim one unit of prize inventory. Returns FALSE when nothing is left,
-- which is how a losing concurrent draw finds out.
CREATE OR REPLACE FUNCTION try_decrement_prize(p_prize_id UUID)
RETURNS BOOLEAN
LANGUAGE plpgsql AS $$
DECLARE
    affected INTEGER;
BEGIN
    UPDATE lucky_draw_prizes
       SET remaining_quantity = remaining_quantity - 1
     WHERE id = p_prize_id
       AND remaining_quantity > 0;
    GET DIAGNOSTICS affected = ROW_COUNT;
    RETURN affected = 1;
END;
$$;

-- Give back a unit claimed by try_decrement_prize when the entry insert failed.
CREATE OR REPLACE FUNCTION restore_prize(p_prize_id UUID)
RETURNS VOID
LANGUAGE sql AS $$
    UPDATE lucky_draw_prizes
       SET remaining_quantity = LEAST(remaining_quantity + 1, quantity)
     WHERE id = p_prize_id;
$$;

-- Fetch-or-create the card and add to it in one statement.
CREATE OR REPLACE FUNCTION increment_loyalty_card(
    p_store_id UUID,
    p_customer_id UUID,
    p_stamps INTEGER,
    p_points INTEGER
)
RETURNS SETOF loyalty_cards
LANGUAGE sql AS $$
    INSERT INTO loyalty_cards (store_id, customer_id, stamps, points)
    VALUES (p_store_id, p_customer_id, p_stamps, p_points)
    ON CONFLICT (store_id, customer_id) DO UPDATE
       SET stamps = loyalty_cards.stamps + EXCLUDED.stamps,
           points = loyalty_cards.points + EXCLUDED.points,
           updated_at = now()
    RETURNING *;
$$;

CREATE OR REPLACE FUNCTION record_customer_order(
    p_customer_id UUID,
    p_amount NUMERIC,
    p_order_date TIMESTAMPTZ
)
RETURNS SETOF customers
LANGUAGE sql AS $$
    UPDATE customers
       SET total_spent = total_spent + p_amount,
           orders_count = orders_count + 1,
           last_order_amount = p_amount,
           last_order_date = GREATEST(COALESCE(last_order_date, p_order_date), p_order_date),
           updated_at = now()
     WHERE id = p_customer_id
    RETURNING *;
$$;
"""

SCHEMA = TABLES + FUNCTIONS
