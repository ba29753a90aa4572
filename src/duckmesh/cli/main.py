"""
DuckMesh CLI - Main entry point

Usage:
    duckmesh job post --client ADDR --model ID --spec-file FILE [options]
    duckmesh job assign --job-id N [options]
    duckmesh job collect --job-id N [options]
    duckmesh result submit --job-id N --provider ADDR --result-file FILE
    duckmesh provider health --endpoint URL
    duckmesh provider register --address ADDR --endpoint URL [options]
    duckmesh provider heartbeat --address ADDR [--timestamp T]
    duckmesh keys generate --out DIR
    duckmesh keys attest --keys DIR --result-file FILE --spec-file FILE

Job state lives in a YAML ledger snapshot (--state) and specs/results in a
directory store (--storage); both default to the values in the config file.
"""

import asyncio
import functools
import json
import logging
import time
from pathlib import Path
from typing import Optional

import click

from duckmesh import __version__
from duckmesh.config import DuckmeshConfig
from duckmesh.coordinator.lifecycle import JobLifecycle
from duckmesh.core.errors import LedgerError, SerializationError
from duckmesh.core.models import Provider, VerificationMode
from duckmesh.identity.attestation import AttestationSigner
from duckmesh.identity.keys import KeyManager
from duckmesh.ledger.memory import InMemoryLedger
from duckmesh.storage.filesystem import FilesystemJobStore
from duckmesh.transport.provider_client import ProviderClient
from duckmesh.transport.serialization import decode_job_spec, decode_result
from duckmesh.verification.reference import ReferenceInferenceClient

logger = logging.getLogger(__name__)

MODE_NAMES = [mode.name.lower() for mode in VerificationMode]


def setup_logging(level: str, fmt: Optional[str] = None) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=fmt or "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def coordinator_options(func):
    """Options shared by commands that touch the ledger or the store."""

    @click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
    @click.option("--state", "state_file", type=click.Path(), help="Ledger snapshot (YAML)")
    @click.option("--storage", "storage_root", type=click.Path(), help="Spec/result store directory")
    @click.option("--log-level", default=None, help="Logging level")
    @functools.wraps(func)
    def wrapper(config_path, state_file, storage_root, log_level, **kwargs):
        config = DuckmeshConfig.load(config_path) if config_path else DuckmeshConfig()
        config.apply_env()
        if state_file:
            config.ledger.state_file = state_file
        if storage_root:
            config.storage.root = storage_root
        if log_level:
            config.logging.level = log_level

        setup_logging(config.logging.level, config.logging.format)
        return func(config=config, **kwargs)

    return wrapper


def echo_json(payload: dict) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


def read_json_file(path: str) -> dict:
    try:
        return json.loads(Path(path).read_text())
    except ValueError as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}")


@click.group()
@click.version_option(version=__version__)
def cli():
    """DuckMesh: job assignment and result verification for inference providers"""
    pass


# Jobs


@cli.group()
def job():
    """Job commands."""
    pass


@job.command("post")
@coordinator_options
@click.option("--client", required=True, help="Client address")
@click.option("--model", "model_id", required=True, help="Model identifier")
@click.option("--spec-file", required=True, type=click.Path(exists=True), help="Job spec JSON")
@click.option("--mode", type=click.Choice(MODE_NAMES), default="redundant", help="Verification mode")
@click.option("--max-price", default=0, type=int, help="Maximum price")
@click.option("--timeout", default=300, type=int, help="Job timeout in seconds")
def job_post(config, client, model_id, spec_file, mode, max_price, timeout):
    """Store a job spec and post the job to the ledger."""
    try:
        spec = decode_job_spec(read_json_file(spec_file))
    except SerializationError as e:
        raise click.ClickException(str(e))

    async def run():
        ledger = InMemoryLedger.load(Path(config.ledger.state_file))
        store = FilesystemJobStore(Path(config.storage.root))

        posted = await ledger.post_job(
            client=client,
            spec_hash=spec.content_hash(),
            model_id=model_id,
            max_price=max_price,
            verification_mode=VerificationMode[mode.upper()],
            timeout=timeout,
        )
        await store.store_job_spec(posted.id, spec)
        ledger.save(Path(config.ledger.state_file))
        return posted

    posted = asyncio.run(run())
    echo_json(posted.to_dict())


async def _run_lifecycle(config: DuckmeshConfig, job_id: int, operation: str):
    ledger = InMemoryLedger.load(Path(config.ledger.state_file))
    store = FilesystemJobStore(Path(config.storage.root))
    transport = ProviderClient(config.transport)
    reference = ReferenceInferenceClient(config.reference)

    try:
        lifecycle = JobLifecycle.from_config(
            config, ledger, store, transport=transport, reference=reference
        )
        if operation == "assign":
            outcome = await lifecycle.assign(job_id)
        else:
            outcome = await lifecycle.collect(job_id)
    finally:
        await transport.aclose()
        await reference.aclose()

    ledger.save(Path(config.ledger.state_file))
    return outcome


@job.command("assign")
@coordinator_options
@click.option("--job-id", required=True, type=int, help="Job to assign")
@click.pass_context
def job_assign(ctx, config, job_id):
    """Select providers for a job and dispatch it."""
    outcome = asyncio.run(_run_lifecycle(config, job_id, "assign"))
    echo_json(outcome.body)
    if not outcome.ok:
        ctx.exit(1)


@job.command("collect")
@coordinator_options
@click.option("--job-id", required=True, type=int, help="Job to collect")
@click.pass_context
def job_collect(ctx, config, job_id):
    """Verify stored results for a job and finalize it."""
    outcome = asyncio.run(_run_lifecycle(config, job_id, "collect"))
    echo_json(outcome.body)
    if not outcome.ok:
        ctx.exit(1)


# Results


@cli.group()
def result():
    """Result commands."""
    pass


@result.command("submit")
@coordinator_options
@click.option("--job-id", required=True, type=int, help="Job the result belongs to")
@click.option("--provider", required=True, help="Submitting provider address")
@click.option("--result-file", required=True, type=click.Path(exists=True), help="Inference result JSON")
def result_submit(config, job_id, provider, result_file):
    """Store a provider's result for a job."""
    try:
        inference = decode_result(read_json_file(result_file))
    except SerializationError as e:
        raise click.ClickException(str(e))

    store = FilesystemJobStore(Path(config.storage.root))
    asyncio.run(store.store_result(job_id, provider, inference))
    echo_json({"jobId": job_id, "provider": provider, "status": "stored"})


# Providers


@cli.group()
def provider():
    """Provider commands."""
    pass


@provider.command("health")
@click.option("--endpoint", required=True, help="Provider base URL")
@click.option("--timeout", default=5.0, type=float, help="Timeout in seconds")
@click.pass_context
def provider_health(ctx, endpoint, timeout):
    """Probe a provider's health endpoint."""
    config = DuckmeshConfig().apply_env()
    config.transport.health_timeout_s = timeout
    target = Provider(
        address=endpoint,
        endpoint=endpoint.rstrip("/"),
        staked_amount=0,
        reputation=0,
        last_heartbeat=0,
    )

    async def run():
        async with ProviderClient(config.transport) as client:
            return await client.check_health(target)

    healthy = asyncio.run(run())
    echo_json({"endpoint": endpoint, "healthy": healthy})
    if not healthy:
        ctx.exit(1)


@provider.command("register")
@coordinator_options
@click.option("--address", required=True, help="Provider address")
@click.option("--endpoint", required=True, help="Provider base URL")
@click.option("--stake", default=0, type=int, help="Staked amount")
@click.option("--reputation", default=50, type=click.IntRange(0, 100), help="Reputation score")
@click.option("--pubkey", default=None, help="Ed25519 public key (hex)")
def provider_register(config, address, endpoint, stake, reputation, pubkey):
    """Register a provider with a fresh heartbeat."""
    registered = Provider(
        address=address,
        endpoint=endpoint.rstrip("/"),
        staked_amount=stake,
        reputation=reputation,
        last_heartbeat=int(time.time()),
        pubkey=pubkey,
    )

    async def run():
        ledger = InMemoryLedger.load(Path(config.ledger.state_file))
        await ledger.register_provider(registered)
        ledger.save(Path(config.ledger.state_file))

    asyncio.run(run())
    echo_json(registered.to_dict())


@provider.command("heartbeat")
@coordinator_options
@click.option("--address", required=True, help="Provider address")
@click.option("--timestamp", default=None, type=int, help="Unix seconds (default: now)")
def provider_heartbeat(config, address, timestamp):
    """Record a provider heartbeat."""

    async def run():
        ledger = InMemoryLedger.load(Path(config.ledger.state_file))
        await ledger.heartbeat(address, timestamp)
        ledger.save(Path(config.ledger.state_file))
        return await ledger.get_provider(address)

    try:
        updated = asyncio.run(run())
    except LedgerError as e:
        raise click.ClickException(str(e))
    echo_json(updated.to_dict())


# Keys


@cli.group()
def keys():
    """Provider key commands."""
    pass


@keys.command("generate")
@click.option("--out", required=True, type=click.Path(file_okay=False), help="Output directory")
def keys_generate(out):
    """Generate an Ed25519 provider key pair."""
    km = KeyManager()
    km.save(Path(out))
    echo_json({"keyId": km.key_id, "pubkey": km.pubkey_hex, "path": out})


@keys.command("attest")
@click.option("--keys", "keys_dir", required=True, type=click.Path(exists=True, file_okay=False), help="Key directory")
@click.option("--result-file", required=True, type=click.Path(exists=True), help="Inference result JSON")
@click.option("--spec-file", required=True, type=click.Path(exists=True), help="Job spec JSON")
def keys_attest(keys_dir, result_file, spec_file):
    """Sign a result and print it with its attestation."""
    try:
        inference = decode_result(read_json_file(result_file))
        spec = decode_job_spec(read_json_file(spec_file))
    except SerializationError as e:
        raise click.ClickException(str(e))

    signer = AttestationSigner(KeyManager.load(Path(keys_dir)))
    echo_json(signer.attest(inference, spec).to_dict())


if __name__ == "__main__":
    cli()
