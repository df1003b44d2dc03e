# transferd

`transferd` is a small REST service. It keeps account balances and moves
money between accounts. Balances are stored in PostgreSQL through SQLAlchemy,
and Redis holds per-account locks. Two transfers that touch the same account
never run at the same time. Locks are always taken in a fixed order, so
opposite transfers (A to B and B to A) cannot deadlock.

## Installation

```
pip install .
```

To install with the test dependencies:

```
pip install ".[test]"
```

The database engine is built with a plain `postgresql` URL. This uses
SQLAlchemy's default PostgreSQL driver, which is not installed with this
package. Install that driver next to it.

## Commands

The package installs one command, `transferd`, which has two subcommands.
With no subcommand, it prints its help.

Create the database tables that do not exist yet:

```
transferd migrate
transferd migrate --config config/env.yaml
```

Start the HTTP server on `0.0.0.0:<server.port>`:

```
transferd api
transferd api --config config/env.yaml
```

The server stops on SIGINT or SIGTERM. It then waits at most
`server.shutdown_timeout` seconds for shutdown to finish, and exits with
status 1 if it takes longer. If the configuration cannot be loaded, or the
database or Redis cannot be reached, the command logs the error and exits
with status 1.

Log lines are written as JSON to standard output.

## Configuration

Settings are read in this order, each step overriding the one before:

1. built-in defaults;
2. an optional YAML file given with `--config`;
3. environment variables.

An environment variable is named after its key, with dots replaced by
underscores and in upper case. For example, `server.port` becomes
`SERVER_PORT` and `database.password` becomes `DATABASE_PASSWORD`.

The defaults are:

```yaml
server:
  port: "8080"
  gin_mode: debug         # "debug" turns on Flask debug mode, "test" testing mode
  shutdown_timeout: 5     # seconds

database:
  host: localhost
  port: "5432"
  user: postgres
  password: password
  name: transfer_service
  sslmode: disable

redis:
  host: localhost
  port: "6379"
  password: ""
  db: 0
```

`server.shutdown_timeout` and `redis.db` must be integers. A file that cannot
be read, or whose top level is not a mapping, raises `ValueError`.

## HTTP API

| Method | Path                        | Purpose                            |
|--------|-----------------------------|------------------------------------|
| GET    | `/health`                   | Liveness check: `{"status": "UP"}` |
| GET    | `/api/v1/accounts/<id>`     | Fetch an account's balance         |
| POST   | `/api/v1/accounts`          | Create an account                  |
| POST   | `/api/v1/accounts/transfer` | Move money between two accounts    |

### Create an account

```
POST /api/v1/accounts
{"account_id": "acc123", "initial_balance": 1000.0}
```

On success, the reply is `201` with
`{"message": "Account created successfully"}`. If the identifier is already
taken, the reply is `500` with `{"message": "Failed to create account"}`.

### Fetch an account

```
GET /api/v1/accounts/acc123
```

On success, the reply is `200` with
`{"account_id": "acc123", "balance": 1000.0}`. For an unknown account, the
reply is `404` with a `null` body.

### Transfer money

```
POST /api/v1/accounts/transfer
{"source_account_id": "acc123", "destination_account_id": "acc456", "amount": 200.0}
```

| Outcome                              | Status | Body `message`                               |
|--------------------------------------|--------|----------------------------------------------|
| Transfer done                        | 200    | `Transaction completed successfully`         |
| Source balance lower than amount     | 200    | `Insufficient balance` (nothing is moved)    |
| Source account missing               | 500    | `Source account not found`                   |
| Destination account missing          | 500    | `Destination account not found`              |
| A lock could not be taken in time    | 500    | `Failed to acquire lock for transaction`     |
| Saving both balances failed          | 500    | `Transaction failed during database update`  |

Both balances are saved in one database transaction.

### Request errors

A POST body that is empty, is not valid JSON, is not a JSON object, or has a
field of the wrong type gets `400` with `{"error": "<reason>"}`. Missing
fields default to an empty string or to `0`.

## Using it as a library

The parts can also be wired together in code:

- `transferd.config.load_config(config_path)` returns a `Config` with
  `server`, `database` and `redis` sections, plus `db_connection_string()`
  and `redis_address()`.
- `transferd.factory.Factory(config, database=None, cache=None)` opens the
  database and Redis connections, unless you pass your own. It is a context
  manager that closes both. It provides `create_account_controller()` and
  `migrate_db()`.
- `transferd.web.create_app(controller)` builds the Flask application.
  `setup_account_routes(app, controller)` adds only the account routes to an
  existing application.
- `transferd.service.AccountServiceImpl(repo, cache, lock_poll_interval=0.01,
  lock_wait_timeout=0.1)` holds the account logic. It works with any
  repository that has the `AccountRepository` methods from
  `transferd.models`, and any cache that has `lock` and `release`. Failures
  raise `ServiceError`, whose `response` attribute holds the `ApiResponse` to
  show. `LockTimeoutError` is a subclass of `ServiceError`.
- `transferd.repository.SqlAccountRepository` stores accounts in the
  `accounts` table. It raises `AccountNotFoundError` and
  `AccountExistsError`.
- `transferd.cache.RedisCache` and `transferd.database.SqlDatabase` wrap the
  Redis client and the SQLAlchemy engine.
- `transferd.logger` is a small structured logger with JSON or text output.

## What it does not do

- There is no authentication, and no endpoint to list, update or delete
  accounts.
- Transfer amounts are not checked. A negative or zero amount is applied
  as given.
- Locks are stored in Redis under `lock:update_account:<id>` with no expiry.
  If a process dies while it holds a lock, the key stays in Redis until it is
  deleted. Until then, every transfer on that account fails with a lock
  timeout.
- `migrate` only creates missing tables. It does not alter existing ones.