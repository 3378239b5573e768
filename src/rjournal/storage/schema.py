from __future__ import annotations


def schema_sql(table: str = "trades") -> str:
    return f"""\
-- Run this in the SQL editor of the database behind the REST endpoint.

create extension if not exists "uuid-ossp";

create table public.{table} (
    id uuid default uuid_generate_v4() primary key,
    created_at timestamp with time zone default timezone('utc'::text, now()) not null,
    date date not null,
    time time without time zone not null,
    symbol text not null,
    model text not null,
    result text check (result in ('WIN', 'LOSS', 'BE')) not null,
    entry_price numeric,
    exit_price numeric,
    r_multiple numeric not null,
    mfe numeric,
    mae numeric,
    notes text,
    conditions jsonb default '{{}}'::jsonb
);

create index idx_{table}_date on public.{table}(date);
create index idx_{table}_model on public.{table}(model);
create index idx_{table}_symbol on public.{table}(symbol);

alter table public.{table} enable row level security;
create policy "Enable access to all users" on public.{table} for all using (true) with check (true);
"""


SCHEMA_SQL = schema_sql()


def setup_steps(table: str = "trades") -> list[str]:
    return [
        "Open the project's SQL editor.",
        f"Run the SQL below to create public.{table}.",
        "Reload the REST API schema cache, then retry.",
    ]
