#!/usr/bin/env python3
"""Command-line interface for Azure Report Tools"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

import requests
import typer
from azure.core.exceptions import AzureError
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .. import __version__
from ..auth.manager import AuthenticationManager
from ..core.exceptions import ReportToolsError, RetryBudgetExceededError
from ..core.interfaces import IReport
from ..core.models import AgeBasis, OutputFormat, ReportConfiguration, ReportResult, RuleDirection, RuleGrouping
from ..core.runner import ReportRunner
from ..cost.query import BillingPeriod
from ..reports.network_inventory import NetworkInventoryReport
from ..reports.nsg_rules import NsgRulesReport
from ..reports.resource_costs import ResourceCostReport
from ..reports.retail_prices import RetailPriceReport
from ..reports.share_aging import ShareAgingReport
from ..reports.storage_costs import StorageCostReport
from ..reports.vm_inventory import VmInventoryReport
from ..utils.config import ConfigurationLoader, create_sample_config
from ..utils.logger import setup_logging
from ..utils.output import console, display_result, export_to_csv, export_to_json

app = typer.Typer(
    name="azure-report-tools",
    help="Azure cost, inventory and network reporting utilities",
    add_completion=False
)

SubscriptionOption = typer.Option(None, "--subscription", "-s", help="Subscription IDs (default: all accessible)")
ExcludeSubscriptionOption = typer.Option(None, "--exclude-subscription", help="Subscription IDs to skip")
NameOption = typer.Option(None, "--name", "-n", help="Name wildcard pattern(s)")
ResourceGroupOption = typer.Option(None, "--resource-group", "-g", help="Resource group wildcard pattern(s)")
ConfigOption = typer.Option(None, "--config", "-c", help="YAML configuration file")
FormatOption = typer.Option(OutputFormat.TABLE.value, "--format", "-f", help="Output format: table, csv, json")
OutputOption = typer.Option(None, "--output", "-o", help="Output file path")
DelimiterOption = typer.Option(None, "--delimiter", "-d", help="CSV delimiter")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
LogFileOption = typer.Option(None, "--log-file", help="Also write logs to this file")


def _load_config(
    config_file: Optional[str],
    subscription_ids: Optional[List[str]] = None,
    excluded_subscription_ids: Optional[List[str]] = None,
    delimiter: Optional[str] = None,
    **overrides
) -> ReportConfiguration:
    return ConfigurationLoader().load_configuration(
        config_file,
        subscription_ids=subscription_ids or None,
        excluded_subscription_ids=excluded_subscription_ids or None,
        csv_delimiter=delimiter,
        **overrides
    )


def _parse_period(period: Optional[str], start: Optional[str], end: Optional[str]) -> BillingPeriod:
    if start or end:
        if not (start and end):
            raise typer.BadParameter("--from and --to must be given together")
        try:
            return BillingPeriod.from_dates(
                datetime.strptime(start, "%Y-%m-%d").date(),
                datetime.strptime(end, "%Y-%m-%d").date(),
            )
        except ValueError as e:
            raise typer.BadParameter(str(e))
    if period:
        try:
            return BillingPeriod.from_month(period)
        except ValueError as e:
            raise typer.BadParameter(str(e))
    return BillingPeriod.previous_month()


def _run_with_progress(description: str, func: Callable[[], ReportResult]) -> ReportResult:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        return func()


def _default_output(report: IReport, output_format: OutputFormat, config: ReportConfiguration) -> str:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return str(Path(config.output_directory) / f"{report.get_report_name()}_{stamp}.{output_format.value}")


def emit_result(
    result: ReportResult,
    report: IReport,
    output_format: str,
    output_file: Optional[str],
    config: ReportConfiguration,
) -> None:
    """Write the result in the requested format and exit with its status"""

    try:
        fmt = OutputFormat(output_format.lower())
    except ValueError:
        console.print(f"❌ Unsupported output format: {output_format}", style="red")
        sys.exit(2)

    if fmt == OutputFormat.TABLE:
        display_result(result, report.get_columns())
    elif fmt == OutputFormat.CSV:
        paths = export_to_csv(result.records, output_file or _default_output(report, fmt, config), config.csv_delimiter)
        for path in paths:
            console.print(f"📁 Results exported to: {path}", style="green")
    else:
        path = export_to_json(result, output_file or _default_output(report, fmt, config))
        console.print(f"📁 Results exported to: {path}", style="green")

    for warning in result.warnings[:10]:
        console.print(f"⚠️  {warning}", style="yellow")
    if len(result.warnings) > 10:
        console.print(f"  ... and {len(result.warnings) - 10} more warnings", style="yellow")

    if result.errors:
        console.print("\n⚠️  Report completed with errors. Check logs for details.", style="yellow")
        sys.exit(1)


def _execute(verbose: bool, body: Callable[[], None]) -> None:
    """Run a command body, mapping failures to exit codes"""
    try:
        body()
    except KeyboardInterrupt:
        console.print("\n❌ Cancelled by user.", style="red")
        sys.exit(130)
    except RetryBudgetExceededError as e:
        console.print(f"\n❌ Aborting run: {e}", style="red")
        sys.exit(1)
    except (ReportToolsError, AzureError, requests.RequestException, OSError) as e:
        console.print(f"\n❌ Report failed: {e}", style="red")
        if verbose:
            console.print_exception()
        sys.exit(1)


def _run_subscription_report(report, config: ReportConfiguration, output_format: str, output_file: Optional[str]) -> None:
    runner = ReportRunner(config, AuthenticationManager())
    result = _run_with_progress(f"Running {report.get_report_name()}...", lambda: runner.run(report))
    emit_result(result, report, output_format, output_file, config)


@app.command("resource-costs")
def resource_costs(
    period: Optional[str] = typer.Option(None, "--period", "-p", help="Billing period YYYYMM (default: previous month)"),
    start: Optional[str] = typer.Option(None, "--from", help="Start date YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, "--to", help="End date YYYY-MM-DD"),
    names: Optional[List[str]] = NameOption,
    types: Optional[List[str]] = typer.Option(None, "--type", "-t", help="Resource type wildcard pattern(s)"),
    resource_groups: Optional[List[str]] = ResourceGroupOption,
    by_meter: bool = typer.Option(False, "--by-meter", help="Split costs by meter category"),
    min_cost: float = typer.Option(0.0, "--min-cost", help="Hide resources below this cost"),
    subscription_ids: Optional[List[str]] = SubscriptionOption,
    exclude_subscriptions: Optional[List[str]] = ExcludeSubscriptionOption,
    config_file: Optional[str] = ConfigOption,
    output_format: str = FormatOption,
    output_file: Optional[str] = OutputOption,
    delimiter: Optional[str] = DelimiterOption,
    verbose: bool = VerboseOption,
    log_file: Optional[str] = LogFileOption,
):
    """Cost and usage per resource for a billing period"""
    setup_logging(verbose, log_file)

    def body():
        config = _load_config(config_file, subscription_ids, exclude_subscriptions, delimiter)
        report = ResourceCostReport(
            period=_parse_period(period, start, end),
            name_patterns=names,
            type_patterns=types,
            resource_group_patterns=resource_groups,
            by_meter=by_meter,
            min_cost=min_cost,
        )
        _run_subscription_report(report, config, output_format, output_file)

    _execute(verbose, body)


@app.command("storage-costs")
def storage_costs(
    period: Optional[str] = typer.Option(None, "--period", "-p", help="Billing period YYYYMM (default: previous month)"),
    start: Optional[str] = typer.Option(None, "--from", help="Start date YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, "--to", help="End date YYYY-MM-DD"),
    names: Optional[List[str]] = NameOption,
    resource_groups: Optional[List[str]] = ResourceGroupOption,
    subscription_ids: Optional[List[str]] = SubscriptionOption,
    exclude_subscriptions: Optional[List[str]] = ExcludeSubscriptionOption,
    config_file: Optional[str] = ConfigOption,
    output_format: str = FormatOption,
    output_file: Optional[str] = OutputOption,
    delimiter: Optional[str] = DelimiterOption,
    verbose: bool = VerboseOption,
    log_file: Optional[str] = LogFileOption,
):
    """Storage account cost broken down by meter"""
    setup_logging(verbose, log_file)

    def body():
        config = _load_config(config_file, subscription_ids, exclude_subscriptions, delimiter)
        report = StorageCostReport(
            period=_parse_period(period, start, end),
            name_patterns=names,
            resource_group_patterns=resource_groups,
        )
        _run_subscription_report(report, config, output_format, output_file)

    _execute(verbose, body)


@app.command("vm-inventory")
def vm_inventory(
    names: Optional[List[str]] = NameOption,
    resource_groups: Optional[List[str]] = ResourceGroupOption,
    power_state: bool = typer.Option(False, "--power-state", help="Query each VM's power state"),
    disks: bool = typer.Option(True, "--disks/--no-disks", help="Include managed disks"),
    subscription_ids: Optional[List[str]] = SubscriptionOption,
    exclude_subscriptions: Optional[List[str]] = ExcludeSubscriptionOption,
    config_file: Optional[str] = ConfigOption,
    output_format: str = FormatOption,
    output_file: Optional[str] = OutputOption,
    delimiter: Optional[str] = DelimiterOption,
    verbose: bool = VerboseOption,
    log_file: Optional[str] = LogFileOption,
):
    """Virtual machine and managed disk inventory"""
    setup_logging(verbose, log_file)

    def body():
        config = _load_config(config_file, subscription_ids, exclude_subscriptions, delimiter)
        report = VmInventoryReport(names, resource_groups, include_power_state=power_state, include_disks=disks)
        _run_subscription_report(report, config, output_format, output_file)

    _execute(verbose, body)


@app.command("network-inventory")
def network_inventory(
    names: Optional[List[str]] = NameOption,
    resource_groups: Optional[List[str]] = ResourceGroupOption,
    nics: bool = typer.Option(True, "--nics/--no-nics", help="Include network interfaces"),
    subscription_ids: Optional[List[str]] = SubscriptionOption,
    exclude_subscriptions: Optional[List[str]] = ExcludeSubscriptionOption,
    config_file: Optional[str] = ConfigOption,
    output_format: str = FormatOption,
    output_file: Optional[str] = OutputOption,
    delimiter: Optional[str] = DelimiterOption,
    verbose: bool = VerboseOption,
    log_file: Optional[str] = LogFileOption,
):
    """Virtual network, subnet and NIC inventory"""
    setup_logging(verbose, log_file)

    def body():
        config = _load_config(config_file, subscription_ids, exclude_subscriptions, delimiter)
        report = NetworkInventoryReport(names, resource_groups, include_nics=nics)
        _run_subscription_report(report, config, output_format, output_file)

    _execute(verbose, body)


@app.command("nsg-rules")
def nsg_rules(
    names: Optional[List[str]] = NameOption,
    resource_groups: Optional[List[str]] = ResourceGroupOption,
    direction: str = typer.Option(RuleDirection.BOTH.value, "--direction", help="Inbound, Outbound or Both"),
    grouping: Optional[str] = typer.Option(
        None, "--grouping", help="summary: protocol/access, detailed: also source/destination"
    ),
    default_rules: Optional[bool] = typer.Option(
        None, "--default-rules/--no-default-rules", help="Include Azure default security rules"
    ),
    subscription_ids: Optional[List[str]] = SubscriptionOption,
    exclude_subscriptions: Optional[List[str]] = ExcludeSubscriptionOption,
    config_file: Optional[str] = ConfigOption,
    output_format: str = FormatOption,
    output_file: Optional[str] = OutputOption,
    delimiter: Optional[str] = DelimiterOption,
    verbose: bool = VerboseOption,
    log_file: Optional[str] = LogFileOption,
):
    """NSG rules with destination port ranges consolidated per rule group"""
    setup_logging(verbose, log_file)

    def body():
        config = _load_config(
            config_file, subscription_ids, exclude_subscriptions, delimiter,
            nsg_grouping=grouping, nsg_include_default_rules=default_rules,
        )
        try:
            rule_direction = RuleDirection(direction.capitalize())
        except ValueError:
            raise typer.BadParameter(f"Unknown direction: {direction}")
        report = NsgRulesReport(
            name_patterns=names,
            resource_group_patterns=resource_groups,
            direction=rule_direction,
            grouping=RuleGrouping(config.nsg_grouping),
            include_default_rules=config.nsg_include_default_rules,
        )
        _run_subscription_report(report, config, output_format, output_file)

    _execute(verbose, body)


@app.command("share-aging")
def share_aging(
    path: str = typer.Argument(..., help="Share or directory to scan"),
    include: Optional[List[str]] = typer.Option(None, "--include", help="File name wildcard(s) to include"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="File name wildcard(s) to skip"),
    accessed: bool = typer.Option(False, "--accessed", help="Age by last access instead of last write"),
    thresholds: Optional[str] = typer.Option(None, "--thresholds", help="Comma-separated day thresholds"),
    config_file: Optional[str] = ConfigOption,
    output_format: str = FormatOption,
    output_file: Optional[str] = OutputOption,
    delimiter: Optional[str] = DelimiterOption,
    verbose: bool = VerboseOption,
    log_file: Optional[str] = LogFileOption,
):
    """File count and size per age bucket on a file share"""
    setup_logging(verbose, log_file)

    def body():
        overrides = {}
        if thresholds:
            try:
                overrides['share_age_thresholds'] = [int(t) for t in thresholds.split(',') if t.strip()]
            except ValueError:
                raise typer.BadParameter(f"Thresholds must be whole days: {thresholds}")
        config = _load_config(config_file, delimiter=delimiter, **overrides)
        report = ShareAgingReport(
            path,
            include_patterns=include,
            exclude_patterns=exclude,
            basis=AgeBasis.ACCESSED if accessed else AgeBasis.MODIFIED,
        )
        runner = ReportRunner(config, auth_manager=AuthenticationManager())
        result = _run_with_progress(f"Scanning {path}...", lambda: runner.run_local(report))
        emit_result(result, report, output_format, output_file, config)

    _execute(verbose, body)


@app.command("retail-prices")
def retail_prices(
    service: Optional[str] = typer.Option(None, "--service", help="Service name, e.g. 'Virtual Machines'"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="ARM region name, e.g. eastus"),
    price_type: str = typer.Option("Consumption", "--price-type", help="Consumption, Reservation or DevTestConsumption"),
    products: Optional[List[str]] = typer.Option(None, "--product", help="Product name wildcard(s)"),
    skus: Optional[List[str]] = typer.Option(None, "--sku", help="SKU name wildcard(s)"),
    meters: Optional[List[str]] = typer.Option(None, "--meter", help="Meter name wildcard(s)"),
    currency: Optional[str] = typer.Option(None, "--currency", help="Currency code, e.g. EUR"),
    max_pages: int = typer.Option(50, "--max-pages", help="Maximum API pages to fetch"),
    config_file: Optional[str] = ConfigOption,
    output_format: str = FormatOption,
    output_file: Optional[str] = OutputOption,
    delimiter: Optional[str] = DelimiterOption,
    verbose: bool = VerboseOption,
    log_file: Optional[str] = LogFileOption,
):
    """Look up Azure retail prices"""
    setup_logging(verbose, log_file)

    def body():
        config = _load_config(config_file, delimiter=delimiter, currency=currency)
        report = RetailPriceReport(
            service_name=service,
            region=region,
            price_type=price_type,
            product_patterns=products,
            sku_patterns=skus,
            meter_patterns=meters,
            max_pages=max_pages,
        )
        runner = ReportRunner(config, auth_manager=AuthenticationManager())
        result = _run_with_progress("Fetching retail prices...", lambda: runner.run_local(report))
        emit_result(result, report, output_format, output_file, config)

    _execute(verbose, body)


@app.command("list-subscriptions")
def list_subscriptions(verbose: bool = VerboseOption):
    """List accessible Azure subscriptions"""
    setup_logging(verbose)

    def body():
        auth_manager = AuthenticationManager()
        subscription_ids = auth_manager.get_accessible_subscriptions()
        if not subscription_ids:
            console.print("❌ No accessible subscriptions found.", style="red")
            sys.exit(1)

        table = Table(title="Accessible Azure Subscriptions")
        table.add_column("Subscription ID", style="cyan")
        table.add_column("Name", style="green")
        for sub_id in subscription_ids:
            table.add_row(sub_id, auth_manager.get_subscription_name(sub_id))
        console.print(table)
        console.print(f"\n📊 Total: {len(subscription_ids)} accessible subscriptions")

    _execute(verbose, body)


@app.command("init-config")
def init_config(
    output_file: str = typer.Argument("azure_report_tools.yml", help="Where to write the sample configuration"),
):
    """Write a sample YAML configuration file"""
    path = create_sample_config(output_file)
    console.print(f"📝 Sample configuration written to: {path}", style="green")


@app.command()
def version():
    """Show version information"""

    version_info = {
        "Azure Report Tools": __version__,
        "Python": sys.version.split()[0],
        "Platform": sys.platform
    }

    panel_content = "\n".join([f"{k}: {v}" for k, v in version_info.items()])
    console.print(Panel(panel_content, title="Version Information", expand=False))


def main():
    """Main entry point"""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n❌ Interrupted by user.", style="red")
        sys.exit(130)


if __name__ == "__main__":
    main()
