"""
Database Schema

Tables used by the provisioning workflow. The company table is shared with
the rest of the platform; only the columns the workflow reads or writes are
declared here.
"""

POSTGRES_SCHEMA = """
-- Companies
CREATE TABLE IF NOT EXISTS company (
    company_id SERIAL PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    telephony_number VARCHAR(20)
);

-- Provisioned agents
CREATE TABLE IF NOT EXISTS agent (
    agent_id SERIAL PRIMARY KEY,
    company_id INTEGER NOT NULL REFERENCES company(company_id),
    agent_type VARCHAR(50) NOT NULL,
    provider_agent_id VARCHAR(255),
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Remote resources left behind by failed or cancelled runs
CREATE TABLE IF NOT EXISTS orphaned_resources (
    orphan_id SERIAL PRIMARY KEY,
    run_id VARCHAR(64) NOT NULL,
    company_id INTEGER NOT NULL,
    resource_type VARCHAR(50) NOT NULL,
    resource_id VARCHAR(255),
    phone_number VARCHAR(20),
    reason TEXT NOT NULL,
    status VARCHAR(20) NOT NULL DEFAULT 'open',
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    resolved_at TIMESTAMPTZ
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_agent_company_id ON agent(company_id);
CREATE INDEX IF NOT EXISTS idx_orphaned_resources_status ON orphaned_resources(status);
"""
