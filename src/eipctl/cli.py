import sys

import click
import halo
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from eipctl.config import Settings
from eipctl.control.provisioner import ElasticIPProvisioner
from eipctl.control.stack import DatabaseConfig, LoadBalancerConfig, StackConfig, StackDeployer
from eipctl.control.swapper import IPSwapper
from eipctl.errors import ProvisioningError, SwapError

console = Console()

PROGRESS_MODE = "steps"  # "steps" or "plain"


class StepProgress:
    """Step-by-step progress display.

    Modes:
        "steps":  halo bouncingBar spinner, checkmark/cross per step on new lines
        "plain":  just print each message, no spinner/ANSI (for non-TTY / debug)
    """

    def __init__(self, mode="steps"):
        self._mode = mode
        self._spinner = None

    def update(self, message):
        if self._mode == "steps":
            if self._spinner:
                self._spinner.succeed()
            self._spinner = halo.Halo(text=message, spinner="bouncingBar")
            self._spinner.start()
        else:
            print(message)

    def finish(self):
        if self._mode == "steps" and self._spinner:
            self._spinner.succeed()
            self._spinner = None

    def fail(self, message=None):
        if self._mode == "steps":
            if self._spinner:
                self._spinner.fail(message)
                self._spinner = None
        else:
            print(message or "Failed")


def _progress_mode(ctx):
    debug = ctx.obj.get("debug", False) if ctx.obj else False
    if debug:
        return "plain"
    if not sys.stderr.isatty():
        return "plain"
    return PROGRESS_MODE


def _make_controller(ctx, cls):
    """Create a controller wired to the CLI context's settings and debug output."""
    debug = ctx.obj.get("debug", False) if ctx.obj else False
    settings = ctx.obj["settings"]
    controller = cls(settings.context(), debug=debug)
    if debug:
        controller.on_debug = lambda msg: console.log(f"[dim]{msg}[/]")
    return controller


def _run(ctx, controller, fn, *args, **kwargs):
    """Run one procedure with step progress, mapping failures to exit codes."""
    progress = StepProgress(mode=_progress_mode(ctx))
    controller.on_status = progress.update
    try:
        result = fn(*args, **kwargs)
        progress.finish()
        return result
    except KeyboardInterrupt as e:
        progress.fail("Interrupted")
        console.print("\n[yellow]Interrupted.[/]")
        if getattr(e, "swap_result", None) is not None:
            _print_swap_table(e.swap_result, title="Partial Swap")
        if getattr(e, "provisioning_error", None) is not None:
            _print_leftovers(e.provisioning_error)
        raise SystemExit(130)
    except SwapError as e:
        progress.fail(str(e))
        console.print(f"[bold red]Error:[/] {e}")
        _print_swap_table(e.result, title="Partial Swap")
        raise SystemExit(1)
    except ProvisioningError as e:
        progress.fail(str(e))
        console.print(f"[bold red]Error:[/] {e}")
        _print_leftovers(e)
        raise SystemExit(1)
    except Exception as e:
        progress.fail(str(e))
        console.print(f"[bold red]Error:[/] {e}")
        raise SystemExit(1)


def _print_leftovers(error):
    if error.allocated and not error.rolled_back:
        console.print(
            f"[yellow]Elastic IP {error.allocation_id} was left allocated. "
            f"Use 'eipctl eips --cleanup' to release it.[/]"
        )
    if error.instance_id and not error.rolled_back:
        console.print(f"[yellow]Instance {error.instance_id} was left running.[/]")


def _print_swap_table(result, title):
    table = Table(title=title)
    table.add_column("Instance", style="cyan")
    table.add_column("Instance ID")
    table.add_column("Detached", style="yellow")
    table.add_column("Attached", style="green")
    for side in result.sides:
        detached = side.detached_allocation_id or ("none" if side.detached else "-")
        attached = side.target_allocation_id if side.attached else "-"
        table.add_row(side.instance_name, side.instance_id, detached, attached)
    console.print(table)


class HelpfulCommand(click.Command):
    """Show full help text when a command is invoked incorrectly."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            click.echo(ctx.get_help())
            click.echo()
            console.print(f"[bold red]Error:[/] {e.format_message()}")
            ctx.exit(2)


class HelpfulGroup(click.Group):
    command_class = HelpfulCommand


@click.group(cls=HelpfulGroup)
@click.version_option(version="0.1.0", prog_name="eipctl")
@click.option("--region", "-r", default=None, help="AWS region (default: $AWS_REGION or us-east-1)")
@click.option("--profile", default=None, help="AWS credentials profile")
@click.option("--debug", is_flag=True, help="Show AWS call details")
@click.pass_context
def cli(ctx, region, profile, debug):
    """eipctl - Provision EC2 instances with Elastic IPs and swap staging/production."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["settings"] = Settings.from_env(region=region, profile=profile)


@cli.command("ensure-eip")
@click.argument("name")
@click.pass_context
def ensure_eip(ctx, name):
    """Find the Elastic IP tagged NAME, allocating it if absent."""
    provisioner = _make_controller(ctx, ElasticIPProvisioner)
    address = _run(ctx, provisioner, provisioner.ensure_floating_ip, name)
    result_text = (
        f"[bold]Name:[/]        {address.name}\n"
        f"[bold]Allocation:[/]  {address.allocation_id}\n"
        f"[bold]Public IP:[/]   {address.public_ip}\n"
        f"[bold]Attached to:[/] {address.instance_id or '-'}"
    )
    console.print(Panel(result_text, title="[green]Elastic IP[/]", border_style="green"))


@cli.command()
@click.argument("name")
@click.option("--image", "-i", default=None, help="AMI ID (default: latest Ubuntu 22.04)")
@click.option("--instance-type", "-t", default=None, help="EC2 instance type")
@click.option("--subnet", default=None, help="Subnet ID")
@click.option("--security-group", "-g", multiple=True, help="Security group ID (repeatable)")
@click.option("--key-name", default=None, help="EC2 key pair name")
@click.option("--rollback", is_flag=True, help="Clean up resources created by this run if it fails")
@click.pass_context
def provision(ctx, name, image, instance_type, subnet, security_group, key_name, rollback):
    """Launch an instance tagged NAME with the Elastic IP NAME-eip attached."""
    provisioner = _make_controller(ctx, ElasticIPProvisioner)
    kwargs = {
        "image_id": image, "rollback": rollback, "subnet_id": subnet,
        "security_group_ids": list(security_group) or None, "key_name": key_name,
    }
    if instance_type:
        kwargs["instance_type"] = instance_type
    instance, address = _run(ctx, provisioner, provisioner.provision_instance_with_floating_ip, name, **kwargs)
    result_text = (
        f"[bold]Name:[/]        {instance.name}\n"
        f"[bold]Instance:[/]    {instance.instance_id}\n"
        f"[bold]Elastic IP:[/]  {address.public_ip} ({address.allocation_id})"
    )
    console.print(Panel(result_text, title="[green]Instance Provisioned[/]", border_style="green"))


@cli.command()
@click.argument("staging", required=False, default=None)
@click.argument("production", required=False, default=None)
@click.option("--staging-tag", default=None, help="Name tag of the staging Elastic IP")
@click.option("--production-tag", default=None, help="Name tag of the production Elastic IP")
@click.option("--allow-drift", is_flag=True, help="Swap even if tags disagree with live associations")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def swap(ctx, staging, production, staging_tag, production_tag, allow_drift, yes):
    """Swap Elastic IPs between the staging and production instances."""
    settings = ctx.obj["settings"]
    staging = staging or settings.staging_instance
    production = production or settings.production_instance
    staging_tag = staging_tag or settings.staging_eip_tag
    production_tag = production_tag or settings.production_eip_tag

    if not yes:
        click.confirm(
            f"Swap Elastic IPs between {staging} and {production}? "
            f"Both instances are briefly without a public address.",
            abort=True,
        )

    swapper = _make_controller(ctx, IPSwapper)
    result = _run(
        ctx, swapper, swapper.swap_floating_ips, staging, production,
        tag_a=staging_tag, tag_b=production_tag, allow_drift=allow_drift,
    )
    for message in result.drift:
        console.print(f"[yellow]Drift:[/] {message}")
    _print_swap_table(result, title="Elastic IPs Swapped")
    if not result.retagged:
        console.print(
            f"[yellow]Tags {staging_tag} and {production_tag} were not moved; "
            f"check them before the next swap.[/]"
        )


@cli.command()
@click.option("--name", "-n", default="my-ubuntu-instance", help="Instance Name tag")
@click.option("--image", "-i", default=None, help="AMI ID (default: latest Ubuntu 22.04)")
@click.option("--instance-type", "-t", default=None, help="EC2 instance type")
@click.option("--subnet", "-s", "subnets", multiple=True, help="Subnet ID (repeatable; first one hosts the instance)")
@click.option("--security-group", "-g", multiple=True, help="Security group ID (repeatable)")
@click.option("--key-name", default=None, help="EC2 key pair name")
@click.option("--db-identifier", default=None, help="Create a database with this identifier")
@click.option("--db-engine", default="postgres", help="Database engine")
@click.option("--db-class", default="db.t3.micro", help="Database instance class")
@click.option("--db-username", default="eipctl", help="Database master user")
@click.option("--db-password", envvar="EIPCTL_DB_PASSWORD", default=None, help="Database master password")
@click.option("--lb-name", default=None, help="Create a load balancer with this name")
@click.option("--vpc-id", default=None, help="VPC for the target group")
@click.option("--port", default=80, type=int, help="Listener and target port")
@click.option("--health-check-path", default="/", help="Target group health check path")
@click.pass_context
def deploy(ctx, name, image, instance_type, subnets, security_group, key_name,
           db_identifier, db_engine, db_class, db_username, db_password,
           lb_name, vpc_id, port, health_check_path):
    """Deploy an instance with an optional database and load balancer."""
    config = StackConfig(
        instance_name=name, image_id=image or "",
        subnet_id=subnets[0] if subnets else "",
        security_group_ids=list(security_group), key_name=key_name or "",
    )
    if instance_type:
        config.instance_type = instance_type
    if db_identifier:
        if not db_password:
            console.print("[red]--db-password (or EIPCTL_DB_PASSWORD) is required with --db-identifier.[/]")
            raise SystemExit(1)
        config.database = DatabaseConfig(
            identifier=db_identifier, password=db_password, username=db_username,
            engine=db_engine, instance_class=db_class,
            security_group_ids=list(security_group),
        )
    if lb_name:
        if not vpc_id or len(subnets) < 2:
            console.print("[red]--lb-name needs --vpc-id and at least two --subnet values.[/]")
            raise SystemExit(1)
        config.load_balancer = LoadBalancerConfig(
            name=lb_name, vpc_id=vpc_id, subnet_ids=list(subnets),
            security_group_ids=list(security_group),
            listener_port=port, target_port=port, health_check_path=health_check_path,
        )

    deployer = _make_controller(ctx, StackDeployer)
    outputs = _run(ctx, deployer, deployer.deploy_stack, config)

    table = Table(title="Stack Outputs")
    table.add_column("Output", style="cyan")
    table.add_column("Value", style="green")
    for key, value in outputs.exports().items():
        table.add_row(key, value)
    console.print(table)


@cli.command()
@click.option("--cleanup", is_flag=True, help="Prompt to release unattached EIPs")
@click.pass_context
def eips(ctx, cleanup):
    """List all eipctl-managed Elastic IPs."""
    provisioner = _make_controller(ctx, ElasticIPProvisioner)
    try:
        eip_list = provisioner.list_floating_ips()
    except Exception as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise SystemExit(1)

    if not eip_list:
        console.print("No eipctl-managed Elastic IPs found.")
        return

    table = Table(title="Elastic IPs")
    table.add_column("Allocation ID", style="cyan")
    table.add_column("Public IP", style="green")
    table.add_column("Name", style="yellow")
    table.add_column("Instance")
    table.add_column("Status")

    for eip in eip_list:
        status = "associated" if eip.associated else "unassociated"
        table.add_row(eip.allocation_id, eip.public_ip, eip.name or "unknown", eip.instance_id or "-", status)

    console.print(table)

    if cleanup:
        orphaned = [e for e in eip_list if not e.associated]
        if not orphaned:
            console.print("[green]No unattached EIPs found.[/]")
            return
        for eip in orphaned:
            if click.confirm(f"Release unattached EIP {eip.public_ip} ({eip.allocation_id})?"):
                try:
                    provisioner.release_floating_ip(eip.allocation_id)
                    console.print(f"[green]Released {eip.public_ip}[/]")
                except Exception as e:
                    console.print(f"[red]Failed to release {eip.public_ip}: {e}[/]")


def main():
    cli(obj={})
