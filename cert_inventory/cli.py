"""
命令行入口
"""
import sys

import click

from .inventory import CertificateInventory, select_run_mode
from .services.config_validator import ConfigValidator, DEFAULT_MAX_WORKERS, DEFAULT_RENEW_ALERT, DEFAULT_TIMEOUT
from .services.domain_sources import CONTROL_PANEL_COMMANDS, DomainSourceCollector
from .services.error_handler import ConfigurationError, MissingDependencyError
from .services.logger import LoggerService
from .services.sns_notification import SNSNotificationService


EXIT_NO_DOMAINS = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_MISSING_DEPENDENCY = 3


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-d", "--domain", "domains", multiple=True, metavar="HOST[:PORT]",
              help="Domain to check, optionally with port or service name.")
@click.option("-f", "--file", "files", multiple=True, type=click.Path(dir_okay=False),
              help="File with one domain per line ('#' comments allowed).")
@click.option("--directory", "directories", multiple=True, type=click.Path(file_okay=False),
              help="Directory whose subdirectory names are domains.")
@click.option("--server", "servers", multiple=True, metavar="KIND",
              help=f"Enumerate domains from a control panel ({', '.join(sorted(CONTROL_PANEL_COMMANDS))}).")
@click.option("-r", "--renew-alert", type=int, envvar="RENEW_ALERT", show_default=True,
              default=DEFAULT_RENEW_ALERT, help="Days before expiry to flag a certificate for renewal.")
@click.option("--timeout", type=float, envvar="CHECK_TIMEOUT", show_default=True,
              default=DEFAULT_TIMEOUT, help="Connect and handshake timeout in seconds.")
@click.option("-w", "--workers", type=int, envvar="MAX_WORKERS", show_default=True,
              default=DEFAULT_MAX_WORKERS, help="Number of endpoints probed in parallel.")
@click.option("--renewal", is_flag=True, help="Only print domains due for renewal.")
@click.option("--problems", is_flag=True, help="Only print rows with problems.")
@click.option("-x", "--exec", "command", metavar="COMMAND",
              help="Run COMMAND with each domain due for renewal as last argument.")
@click.option("--sns-topic-arn", envvar="SNS_TOPIC_ARN",
              help="Publish the renewal list to this SNS topic.")
@click.option("--log-level", envvar="LOG_LEVEL", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def main(domains, files, directories, servers, renew_alert, timeout, workers,
         renewal, problems, command, sns_topic_arn, log_level):
    """Inventory TLS endpoints and report certificate identity, expiry and problems."""
    logger_service = LoggerService(log_level=log_level)
    
    try:
        mode = select_run_mode(renewal=renewal, problems=problems, command=command)
        context = ConfigValidator().build_run_context(
            renew_alert_days=renew_alert, timeout=timeout, max_workers=workers,
            mode=mode, command=command
        )
        collector = DomainSourceCollector.from_options(
            domains=domains, files=files, directories=directories, servers=servers
        )
        lines = collector.collect()
    except MissingDependencyError as e:
        click.secho(str(e), fg="red", err=True)
        sys.exit(EXIT_MISSING_DEPENDENCY)
    except ConfigurationError as e:
        click.secho(str(e), fg="red", err=True)
        sys.exit(EXIT_CONFIGURATION_ERROR)
    
    if not lines:
        click.secho("No domains given, use --domain, --file, --directory or --server.", fg="yellow", err=True)
        sys.exit(EXIT_NO_DOMAINS)
    
    inventory = CertificateInventory(context, logger_service=logger_service)
    report = inventory.run(lines)
    
    output = inventory.render(report)
    if output:
        click.echo(output)
    
    inventory.dispatch(report)
    
    if sns_topic_arn:
        notifier = SNSNotificationService(topic_arn=sns_topic_arn, renew_alert_days=context.renew_alert_days)
        notifier.send_renewal_notification(report)


if __name__ == "__main__":
    main()
