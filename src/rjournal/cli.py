from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from rjournal.config.app_config import AppConfig, load_app_config, merged_env
from rjournal.metrics.summary import Dashboard, compute_dashboard, dashboard_payload
from rjournal.models import TradeFilter, filter_trades
from rjournal.storage.json_file import LoadResult, load_trades, write_trades
from rjournal.storage.rest_store import (
    RestStoreConfig,
    SchemaMissingError,
    StoreError,
    TradeStore,
)
from rjournal.storage.schema import schema_sql


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Discretionary trade journal tools.")
    parser.add_argument("--config", type=Path, default=None, help="Path to app.toml.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analytics = subparsers.add_parser("analytics", help="Print R-based analytics for logged trades.")
    analytics.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Read trades from a JSON export instead of the store.",
    )
    analytics.add_argument("--start", type=str, default=None, help="First date to include (YYYY-MM-DD).")
    analytics.add_argument("--end", type=str, default=None, help="Last date to include (YYYY-MM-DD).")
    analytics.add_argument("--symbol", type=str, default=None, help="Only trades on this symbol.")
    analytics.add_argument("--model", type=str, default=None, help="Only trades tagged with this model.")
    analytics.add_argument("--json", action="store_true", help="Print JSON output.")
    analytics.add_argument("--out", type=Path, default=None, help="Write output to a file instead of stdout.")

    export = subparsers.add_parser("export", help="Write every stored trade to a JSON file.")
    export.add_argument("--out", type=Path, default=Path("data/trades.json"), help="Output path.")

    subparsers.add_parser("schema", help="Print the SQL that creates the trades table.")
    subparsers.add_parser("serve", help="Run the web journal.")

    args = parser.parse_args(argv)
    app_config = load_app_config(args.config)

    if args.command == "schema":
        print(schema_sql(app_config.store.table), end="")
        return 0
    if args.command == "serve":
        from rjournal.web.app import main as serve

        serve()
        return 0

    try:
        if args.command == "export":
            return _export(app_config, args.out)
        return _analytics(app_config, args)
    except SchemaMissingError as exc:
        print(f"Trade table missing: {exc.message}", file=sys.stderr)
        print("Run `rjournal schema` and apply the SQL to the database.", file=sys.stderr)
        return 2
    except StoreError as exc:
        print(f"Trade store request failed: {exc.message}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as exc:
        print(f"Unable to read trades: {exc}", file=sys.stderr)
        return 1


def _export(app_config: AppConfig, out_path: Path) -> int:
    result = _store(app_config).fetch_all()
    _report_skipped(result)
    count = write_trades(out_path, result.trades)
    print(f"Wrote {count} trades to {out_path}.", file=sys.stderr)
    return 0


def _analytics(app_config: AppConfig, args: argparse.Namespace) -> int:
    if args.input is not None:
        result = load_trades(args.input)
    else:
        result = _store(app_config).fetch_all()
    _report_skipped(result)

    trade_filter = TradeFilter.from_params(
        {"start": args.start, "end": args.end, "symbol": args.symbol, "model": args.model}
    )
    dashboard = compute_dashboard(filter_trades(result.trades, trade_filter))

    if args.json:
        text = json.dumps(dashboard_payload(dashboard), indent=2, sort_keys=True)
    else:
        text = format_dashboard(dashboard)

    if args.out is None:
        print(text)
    else:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text + "\n", encoding="utf-8")
    return 0


def format_dashboard(dashboard: Dashboard) -> str:
    lines = [f"trades {dashboard.trade_count}", "", "model count win_rate avg_r total_r"]
    for row in dashboard.model_performance:
        lines.append(
            f"{row.model} {row.count} {_format_float(row.win_rate)} "
            f"{_format_float(row.avg_r)} {_format_float(row.total_r)}"
        )

    impact = dashboard.condition_impact
    lines.extend(["", f"global_avg_r {_format_float(impact.global_avg_r)}"])
    lines.append("condition count win_rate avg_r delta delta_vs_without")
    for row in impact.impact_data:
        lines.append(
            f"{row.condition} {row.count} {_format_float(row.win_rate)} {_format_float(row.avg_r)} "
            f"{_format_float(row.delta)} {_format_float(row.delta_vs_without)}"
        )

    time_metrics = dashboard.time_metrics
    lines.extend(["", "bucket count win_rate total_r"])
    for row in [*time_metrics.hourly_data, *time_metrics.day_data]:
        lines.append(f"{row.name} {row.count} {_format_float(row.win_rate)} {_format_float(row.value)}")
    final_r = time_metrics.equity_curve[-1].r if time_metrics.equity_curve else 0.0
    lines.append(f"equity_final_r {_format_float(final_r)}")

    stats = dashboard.execution_quality.stats
    lines.extend(
        [
            "",
            f"avg_mfe_winners {_format_float(stats.avg_mfe_winners)}",
            f"avg_mae_losers {_format_float(stats.avg_mae_losers)}",
            f"efficiency {_format_float(stats.efficiency)}",
            f"win_count {stats.win_count}",
            f"loss_count {stats.loss_count}",
            f"scatter_points {len(dashboard.execution_quality.scatter_data)}",
        ]
    )
    return "\n".join(lines)


def _store(app_config: AppConfig) -> TradeStore:
    return TradeStore(RestStoreConfig.from_env(merged_env(app_config), app_config.store))


def _report_skipped(result: LoadResult) -> None:
    if result.skipped:
        print(f"Skipped {result.skipped} malformed trade records.", file=sys.stderr)


def _format_float(value: float) -> str:
    return f"{value:.6g}"


if __name__ == "__main__":
    raise SystemExit(main())
