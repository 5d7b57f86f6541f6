"""Tests for environment provisioning."""

import pytest

from runbox.services.execution import EnvironmentProvisioner, EnvironmentState, ProvisionError


@pytest.mark.asyncio
async def test_provision_interpreted_language(registry, fake_runtime):
    runtime = fake_runtime()
    provisioner = EnvironmentProvisioner(runtime, workdir="/tmp")

    environment = await provisioner.provision(registry.resolve("python"), "print(1+1)")

    assert environment.state is EnvironmentState.PROVISIONED
    assert environment.language == "python"
    assert environment.image == "python:3.9"
    container = runtime.created[0]
    assert container.command == ["python", "-c", "print(1+1)"]
    assert container.working_dir == "/tmp"
    # Created only, never started
    assert runtime.started == []
    assert runtime.uploads == []


@pytest.mark.asyncio
async def test_provision_compiled_language_uploads_source(registry, fake_runtime):
    runtime = fake_runtime()
    provisioner = EnvironmentProvisioner(runtime, workdir="/work")
    source = '#include <cstdio>\nint main() { puts("\\"quoted\\" $(id)"); }'

    environment = await provisioner.provision(registry.resolve("cpp"), source)

    container = runtime.created[0]
    assert container.files == {"/work/main.cpp": source}
    assert source not in " ".join(container.command)
    assert environment.container_id == container.id
    assert environment.short_id == container.id[:12]


@pytest.mark.asyncio
async def test_create_failure_raises_provision_error(registry, fake_runtime):
    runtime = fake_runtime(fail_on={"create"})
    provisioner = EnvironmentProvisioner(runtime)

    with pytest.raises(ProvisionError) as excinfo:
        await provisioner.provision(registry.resolve("js"), "console.log(1)")

    assert "language=js" in str(excinfo.value)
    assert "image=node:14" in str(excinfo.value)
    assert excinfo.value.__cause__ is not None
    assert runtime.removed == []


@pytest.mark.asyncio
async def test_upload_failure_removes_created_container(registry, fake_runtime):
    runtime = fake_runtime(fail_on={"upload"})
    provisioner = EnvironmentProvisioner(runtime)

    with pytest.raises(ProvisionError, match="main.ts"):
        await provisioner.provision(registry.resolve("ts"), "console.log(1)")

    assert len(runtime.created) == 1
    assert runtime.removed == runtime.created
