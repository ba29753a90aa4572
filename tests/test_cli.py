"""
Tests for the command-line interface.
"""

import json

import pytest
from click.testing import CliRunner

from duckmesh.cli.main import cli
from duckmesh.transport.provider_client import ProviderClient


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(temp_dir):
    """State/storage paths plus spec and result files."""
    spec_file = temp_dir / "spec.json"
    spec_file.write_text(
        json.dumps({"prompt": "Capital of France?", "maxTokens": 16, "temperature": 0.1})
    )
    return {
        "dir": temp_dir,
        "state": str(temp_dir / "ledger.yaml"),
        "storage": str(temp_dir / "store"),
        "spec": str(spec_file),
    }


def write_result(workspace, name, output, signature=""):
    path = workspace["dir"] / f"{name}.json"
    path.write_text(json.dumps({"output": output, "metadata": {"tokensUsed": 3}, "signature": signature}))
    return str(path)


def common(workspace):
    return ["--state", workspace["state"], "--storage", workspace["storage"]]


class TestJobCommands:
    """Tests for job post/collect through the snapshot ledger."""

    def test_post_then_collect(self, runner, workspace):
        posted = runner.invoke(
            cli,
            ["job", "post", "--client", "0xclient", "--model", "j2-mid",
             "--spec-file", workspace["spec"], "--mode", "redundant"] + common(workspace),
        )
        assert posted.exit_code == 0, posted.output
        job = json.loads(posted.output)
        assert job["id"] == 1
        assert job["verificationMode"] == 0

        pending = runner.invoke(cli, ["job", "collect", "--job-id", "1"] + common(workspace))
        assert pending.exit_code == 0
        assert json.loads(pending.output) == {"message": "Results not ready yet"}

        for provider in ("0xaaa", "0xbbb"):
            submitted = runner.invoke(
                cli,
                ["result", "submit", "--job-id", "1", "--provider", provider,
                 "--result-file", write_result(workspace, provider, "Paris")] + common(workspace),
            )
            assert submitted.exit_code == 0, submitted.output

        collected = runner.invoke(cli, ["job", "collect", "--job-id", "1"] + common(workspace))
        assert collected.exit_code == 0, collected.output
        body = json.loads(collected.output)
        assert body["status"] == "finalized"
        assert body["result"] == "Paris"

        # Finalized status was persisted to the snapshot
        assert "status: 4" in (workspace["dir"] / "ledger.yaml").read_text()

    def test_assign_unknown_job_exits_non_zero(self, runner, workspace):
        result = runner.invoke(cli, ["job", "assign", "--job-id", "9"] + common(workspace))
        assert result.exit_code == 1
        assert json.loads(result.output) == {"error": "Job not found", "reason": "job_not_found"}

    def test_assign_without_providers(self, runner, workspace):
        runner.invoke(
            cli,
            ["job", "post", "--client", "0xc", "--model", "j2-mid",
             "--spec-file", workspace["spec"]] + common(workspace),
        )
        result = runner.invoke(cli, ["job", "assign", "--job-id", "1"] + common(workspace))
        assert result.exit_code == 1
        assert json.loads(result.output)["reason"] == "no_eligible_providers"


class TestProviderCommands:
    """Tests for provider register/heartbeat feeding assignment."""

    def register(self, runner, workspace, address, *extra):
        return runner.invoke(
            cli,
            ["provider", "register", "--address", address,
             "--endpoint", f"http://{address}.example/", "--stake", "10000",
             "--reputation", "90"] + list(extra) + common(workspace),
        )

    def test_post_register_assign(self, runner, workspace, monkeypatch):
        dispatched = []

        async def fake_assign_job(self, provider, job, spec):
            dispatched.append((provider.address, job.id, spec.prompt))

        monkeypatch.setattr(ProviderClient, "assign_job", fake_assign_job)

        posted = runner.invoke(
            cli,
            ["job", "post", "--client", "0xc", "--model", "j2-mid",
             "--spec-file", workspace["spec"], "--mode", "reference_check"] + common(workspace),
        )
        assert posted.exit_code == 0, posted.output

        registered = self.register(runner, workspace, "0xaaa")
        assert registered.exit_code == 0, registered.output
        provider = json.loads(registered.output)
        assert provider["endpoint"] == "http://0xaaa.example"
        assert provider["stakedAmount"] == 10000

        assigned = runner.invoke(cli, ["job", "assign", "--job-id", "1"] + common(workspace))
        assert assigned.exit_code == 0, assigned.output
        assert json.loads(assigned.output)["assignedProviders"] == ["0xaaa"]
        assert dispatched == [("0xaaa", 1, "Capital of France?")]

    def test_stale_provider_is_revived_by_heartbeat(self, runner, workspace, monkeypatch):
        async def fake_assign_job(self, provider, job, spec):
            return None

        monkeypatch.setattr(ProviderClient, "assign_job", fake_assign_job)
        runner.invoke(
            cli,
            ["job", "post", "--client", "0xc", "--model", "j2-mid",
             "--spec-file", workspace["spec"], "--mode", "attestation"] + common(workspace),
        )
        self.register(runner, workspace, "0xaaa")
        stale = runner.invoke(
            cli,
            ["provider", "heartbeat", "--address", "0xaaa", "--timestamp", "1000"]
            + common(workspace),
        )
        assert stale.exit_code == 0, stale.output
        assert json.loads(stale.output)["lastHeartbeat"] == 1000

        rejected = runner.invoke(cli, ["job", "assign", "--job-id", "1"] + common(workspace))
        assert json.loads(rejected.output)["reason"] == "no_eligible_providers"

        fresh = runner.invoke(
            cli, ["provider", "heartbeat", "--address", "0xaaa"] + common(workspace)
        )
        assert fresh.exit_code == 0, fresh.output

        assigned = runner.invoke(cli, ["job", "assign", "--job-id", "1"] + common(workspace))
        assert assigned.exit_code == 0, assigned.output

    def test_heartbeat_unknown_provider(self, runner, workspace):
        result = runner.invoke(
            cli, ["provider", "heartbeat", "--address", "0xnope"] + common(workspace)
        )
        assert result.exit_code == 1
        assert "Unknown provider: 0xnope" in result.output

    def test_reputation_out_of_range(self, runner, workspace):
        result = self.register(runner, workspace, "0xaaa", "--reputation", "101")
        assert result.exit_code == 2

class TestKeyCommands:
    """Tests for key generation and attestation signing."""

    def test_generate_and_attest(self, runner, workspace):
        keys_dir = workspace["dir"] / "keys"

        generated = runner.invoke(cli, ["keys", "generate", "--out", str(keys_dir)])
        assert generated.exit_code == 0, generated.output
        assert len(json.loads(generated.output)["pubkey"]) == 64

        attested = runner.invoke(
            cli,
            ["keys", "attest", "--keys", str(keys_dir),
             "--result-file", write_result(workspace, "r", "Paris"),
             "--spec-file", workspace["spec"]],
        )
        assert attested.exit_code == 0, attested.output
        assert len(json.loads(attested.output)["signature"]) == 128

    def test_bad_result_file(self, runner, workspace):
        bad = workspace["dir"] / "bad.json"
        bad.write_text("[1, 2]")
        result = runner.invoke(
            cli,
            ["result", "submit", "--job-id", "1", "--provider", "0xa",
             "--result-file", str(bad)] + common(workspace),
        )
        assert result.exit_code == 1
