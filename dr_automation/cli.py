#!/usr/bin/env python3
"""
Disaster Recovery CLI Tool
Validate runbook configuration, inspect execution order and run recovery drills
"""

import asyncio
import json
import sys
from typing import Optional

import click

from .clock import ManualClock
from .config import DisasterRecoveryConfig, DisasterRecoverySettings, load_config
from .core.exceptions import ConfigurationError
from .logging_adapter import configure_logging
from .models import DisasterType, ExecutionStatus, Severity
from .orchestrator import RecoveryOrchestrator
from .step_executor import StepExecutor


def _load_or_exit(ctx: click.Context, config_path: Optional[str]) -> DisasterRecoveryConfig:
    settings: DisasterRecoverySettings = ctx.obj['settings']
    path = config_path or settings.config_path
    if path is None:
        click.echo("✗ No configuration given (argument or DR_CONFIG_PATH)", err=True)
        sys.exit(1)

    try:
        return load_config(path)
    except ConfigurationError as e:
        click.echo(f"✗ {e.message}", err=True)
        sys.exit(1)


@click.group()
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Minimum log level (default: DR_LOG_LEVEL or INFO)')
@click.option('--json-logs', is_flag=True, default=None, help='Emit JSON log lines')
@click.pass_context
def cli(ctx, log_level, json_logs):
    """Disaster recovery automation CLI"""
    settings = DisasterRecoverySettings()
    configure_logging(log_level or settings.log_level, json_logs or settings.json_logs)
    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings


@cli.command('validate')
@click.argument('config_path', required=False, type=click.Path(dir_okay=False))
@click.pass_context
def validate(ctx, config_path):
    """Load and validate a YAML configuration"""
    config = _load_or_exit(ctx, config_path)

    click.echo(f"✓ Configuration valid: {config_path or ctx.obj['settings'].config_path}")
    click.echo(f"  Enabled: {config.enabled}")
    click.echo(f"  Auto failover: {config.auto_failover}")
    click.echo(f"  RTO/RPO: {config.recovery_time_objective:g}/{config.recovery_point_objective:g} minutes")
    click.echo(f"  Health check: every {config.health_check_interval:g}s, "
               f"threshold {config.failure_threshold}")
    click.echo(f"  Recovery steps: {len(config.recovery_steps)}")
    if config.notifications.channels:
        click.echo(f"  Notification channels: {', '.join(config.notifications.channels)}")


@cli.command('plan')
@click.argument('config_path', required=False, type=click.Path(dir_okay=False))
@click.pass_context
def plan(ctx, config_path):
    """Show recovery steps in execution order"""
    config = _load_or_exit(ctx, config_path)

    click.echo("Recovery Plan")
    click.echo("=" * 50)
    for position, step in enumerate(config.ordered_steps(), 1):
        flags = []
        if step.critical:
            flags.append("critical")
        if step.rollback_command:
            flags.append("rollback")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"{position}. {step.id} ({step.type.value}, order={step.order}){suffix}")
        click.echo(f"   timeout={step.timeout:g}m retries={step.retries}")
        if step.dependencies:
            click.echo(f"   depends on: {', '.join(step.dependencies)}")

    hazards = config.ordering_hazards()
    if hazards:
        click.echo("\nWarnings:")
        for step_id, dependency in hazards:
            click.echo(f"  ! {step_id} depends on {dependency}, which runs later; "
                       f"{step_id} will always be skipped")


@cli.command('drill')
@click.argument('config_path', required=False, type=click.Path(dir_okay=False))
@click.option('--type', 'disaster_type', default=DisasterType.MANUAL_TRIGGER.value,
              type=click.Choice([t.value for t in DisasterType]), help='Disaster type')
@click.option('--description', default='Recovery drill', help='Event description')
@click.option('--system', 'systems', multiple=True, help='Affected system (repeatable)')
@click.option('--severity', default=Severity.HIGH.value,
              type=click.Choice([s.value for s in Severity]), help='Event severity')
@click.option('--fail', 'failing_steps', multiple=True, help='Step id that should fail (repeatable)')
@click.pass_context
def drill(ctx, config_path, disaster_type, description, systems, severity, failing_steps):
    """Run one simulated recovery end to end and print the result"""
    config = _load_or_exit(ctx, config_path)

    unknown = [step_id for step_id in failing_steps if config.get_step(step_id) is None]
    if unknown:
        click.echo(f"✗ Unknown step ids: {', '.join(unknown)}", err=True)
        sys.exit(1)

    async def _drill():
        orchestrator = RecoveryOrchestrator(
            config,
            step_executor=StepExecutor.simulated(failing_steps),
            clock=ManualClock(),
        )
        recovery_id = orchestrator.trigger_recovery(
            disaster_type, description, list(systems), severity
        )
        return await orchestrator.wait_for_recovery(recovery_id)

    execution = asyncio.run(_drill())
    click.echo(json.dumps(execution.to_dict(), indent=2, default=str))
    if execution.status != ExecutionStatus.COMPLETED:
        sys.exit(2)


if __name__ == '__main__':
    cli()
