import pytest
from pydantic import SecretStr

from indexbuilder import constants
from indexbuilder.builder import steps
from indexbuilder.builder.steps import (
    workdir_for,
    prepare_environment,
    build,
    generate_and_send,
    build_image,
    publish,
)
from indexbuilder.config import PublishTarget
from indexbuilder.datacls.artifacts import Image, INDEXER_IMAGE_TEMPLATE
from indexbuilder.exceptions import (
    BuildError,
    ReadError,
    ReportError,
    ImageBuildError,
    MissingCredentialsError,
    PublishError,
    SourcePathError,
)

from conftest import FakeEngine, FakeFetcher, PROJECT_INFO, COMPLETE_PUBLISH, info_path

INSTALL = ("pnpm", "install", "--frozen-lockfile")
BUILD = ("pnpm", "apibara", "build")
WRITE_INFO = ("pnpm", "apibara", "write-project-info")


class TestPrepareEnvironment:

    @pytest.mark.parametrize("target_dir, expected", [
        (None, "/src"),
        ("", "/src"),
        ("indexer", "/src/indexer"),
        ("packages/indexers/evm", "/src/packages/indexers/evm"),
    ])
    def test_workdir(self, target_dir, expected):
        assert workdir_for(target_dir) == expected

    def test_enables_corepack_first(self, source):
        env = prepare_environment(source, "packages/indexer")
        assert env.workdir == "/src/packages/indexer"
        assert env.steps == (("corepack", "enable"),)
        assert env.base_image == constants.BASE_IMAGE
        assert env.image_id is None

    def test_does_not_touch_source(self, source):
        before = sorted(p.name for p in source.path.iterdir())
        prepare_environment(source)
        assert sorted(p.name for p in source.path.iterdir()) == before


class TestBuild:

    def test_install_then_build(self, source, engine):
        env = prepare_environment(source)
        built = build(env, "pnpm", engine)
        assert engine.executed == [("corepack", "enable"), INSTALL, BUILD]
        assert built.package_manager == "pnpm"
        assert built.image_id is not None

    def test_input_environment_unchanged(self, source, engine):
        env = prepare_environment(source)
        build(env, "pnpm", engine)
        assert env.steps == (("corepack", "enable"),)
        assert env.package_manager is None

    def test_install_failure_skips_build_command(self, source):
        engine = FakeEngine(fail_on=[INSTALL])
        with pytest.raises(BuildError, match="install"):
            build(prepare_environment(source), "pnpm", engine)
        assert BUILD not in engine.executed

    def test_build_failure(self, source):
        engine = FakeEngine(fail_on=[BUILD])
        with pytest.raises(BuildError):
            build(prepare_environment(source), "pnpm", engine)
        assert INSTALL in engine.executed

    def test_npm_commands(self, source, engine):
        build(prepare_environment(source), "npm", engine)
        assert ("npm", "install", "--frozen-lockfile") in engine.executed
        assert ("npm", "apibara", "build") in engine.executed

    def test_unknown_package_manager_used_verbatim(self, source, engine, caplog):
        with caplog.at_level("WARNING"):
            build(prepare_environment(source), "yarn", engine)
        assert ("yarn", "apibara", "build") in engine.executed
        assert "yarn" in caplog.text


class TestGenerateAndSend:

    @pytest.fixture
    def built(self, source, engine):
        return build(prepare_environment(source), "pnpm", engine)

    def test_reads_project_info_without_endpoint(self, built, engine, monkeypatch, caplog):
        sent = []
        monkeypatch.setattr(steps, "send_project_info", lambda *args, **kwargs: sent.append(args))
        with caplog.at_level("WARNING"):
            info = generate_and_send(built, engine)
        assert info == PROJECT_INFO
        assert sent == []
        assert "No API endpoint configured. Skipping API call." in caplog.text
        assert engine.executed[-1] == WRITE_INFO
        assert ("read_file", info_path()) in engine.calls

    @pytest.mark.parametrize("endpoint", [None, ""])
    def test_empty_endpoint_makes_no_call(self, built, engine, monkeypatch, endpoint):
        sent = []
        monkeypatch.setattr(steps, "send_project_info", lambda *args, **kwargs: sent.append(args))
        assert generate_and_send(built, engine, api_endpoint=endpoint) == PROJECT_INFO
        assert sent == []

    def test_sends_to_endpoint(self, built, engine, monkeypatch):
        sent = []

        def fake_send(endpoint, project_info, token=None, timeout=None):
            sent.append((endpoint, project_info, token, timeout))

        monkeypatch.setattr(steps, "send_project_info", fake_send)
        token = SecretStr("abc123")
        generate_and_send(built, engine, api_endpoint="https://api.example.com/ingest",
                          api_bearer_token=token, timeout=5)
        assert sent == [("https://api.example.com/ingest", PROJECT_INFO, token, 5)]

    def test_report_failure_propagates(self, built, engine, monkeypatch):
        def failing_send(*args, **kwargs):
            raise ReportError("Failed to send project info")

        monkeypatch.setattr(steps, "send_project_info", failing_send)
        with pytest.raises(ReportError):
            generate_and_send(built, engine, api_endpoint="https://api.example.com/ingest")

    def test_missing_file_raises_read_error(self, source):
        engine = FakeEngine(files={})
        built = build(prepare_environment(source), "pnpm", engine)
        with pytest.raises(ReadError):
            generate_and_send(built, engine)

    def test_reads_inside_target_dir(self, tmp_path):
        source = FakeFetcher(tmp_path, subdirs=["indexer"]).fetch("github.com/org/indexer")
        engine = FakeEngine(files={info_path("indexer"): PROJECT_INFO})
        built = build(prepare_environment(source, "indexer"), "pnpm", engine)
        assert generate_and_send(built, engine) == PROJECT_INFO
        assert ("read_file", "/src/indexer/.apibara/project-info.json") in engine.calls


class TestBuildImage:

    def test_uses_source_root_as_context(self, source, engine):
        image = build_image(source, engine)
        assert image.context == source.path
        assert ("build_image", source.path) in engine.calls

    def test_uses_target_dir_as_context(self, tmp_path):
        source = FakeFetcher(tmp_path, subdirs=["packages/indexer"]).fetch("github.com/org/indexer")
        engine = FakeEngine()
        image = build_image(source, engine, target_dir="packages/indexer")
        assert image.context == source.path / "packages" / "indexer"

    def test_missing_context_raises(self, source, engine):
        with pytest.raises(ImageBuildError, match="does not exist"):
            build_image(source, engine, target_dir="nowhere")
        assert "build_image" not in engine.call_names()

    def test_engine_failure_propagates(self, source):
        with pytest.raises(ImageBuildError):
            build_image(source, FakeEngine(fail_image=True))

    def test_indexer_recipe(self):
        assert "pnpm install --frozen-lockfile" in INDEXER_IMAGE_TEMPLATE
        assert "pnpm apibara build" in INDEXER_IMAGE_TEMPLATE
        assert 'ENTRYPOINT ["node", ".apibara/build/start.mjs"]' in INDEXER_IMAGE_TEMPLATE


class TestPublish:

    @pytest.fixture
    def image(self, tmp_path):
        return Image(id="sha256:image", tag="idxb-image:test", context=tmp_path)

    def test_publishes_to_latest(self, image, engine):
        address = publish(image, PublishTarget(**COMPLETE_PUBLISH), engine)
        assert address == "ghcr.io/org/indexer:latest"
        assert engine.call_names() == ["sync_image", "login", "push", "logout"]
        assert ("login", "ghcr.io/org", "bot") in engine.calls

    @pytest.mark.parametrize("field", ["registry", "image_name", "username", "password"])
    def test_missing_field_makes_no_engine_call(self, image, engine, field):
        data = dict(COMPLETE_PUBLISH)
        del data[field]
        with pytest.raises(MissingCredentialsError, match=field):
            publish(image, PublishTarget(**data), engine)
        assert engine.calls == []

    def test_push_failure(self, image):
        engine = FakeEngine(fail_push=True)
        with pytest.raises(PublishError):
            publish(image, PublishTarget(**COMPLETE_PUBLISH), engine)
        assert engine.call_names()[-1] == "logout"

    def test_login_failure_skips_push(self, image):
        engine = FakeEngine(fail_login=True)
        with pytest.raises(PublishError):
            publish(image, PublishTarget(**COMPLETE_PUBLISH), engine)
        assert "push" not in engine.call_names()

    def test_password_never_logged(self, image, caplog):
        engine = FakeEngine(fail_push=True)
        with caplog.at_level("DEBUG"):
            with pytest.raises(PublishError) as excinfo:
                publish(image, PublishTarget(**COMPLETE_PUBLISH), engine)
        assert COMPLETE_PUBLISH["password"] not in caplog.text
        assert COMPLETE_PUBLISH["password"] not in str(excinfo.value)


class TestSourceConfinement:

    @pytest.mark.parametrize("target_dir", ["/etc", "../..", "indexer/../../.."])
    def test_directory_outside_tree_rejected(self, source, target_dir):
        with pytest.raises(SourcePathError):
            source.directory(target_dir)

    def test_directory_inside_tree(self, source):
        assert source.directory("packages/indexer") == source.path / "packages" / "indexer"

    @pytest.mark.parametrize("target_dir", ["/etc", "../.."])
    def test_build_image_rejects_outside_context(self, source, engine, target_dir):
        with pytest.raises(ImageBuildError, match="outside the source tree"):
            build_image(source, engine, target_dir=target_dir)
        assert "build_image" not in engine.call_names()

    @pytest.mark.parametrize("target_dir", ["/etc", "../.."])
    def test_prepare_environment_rejects_outside_workdir(self, source, target_dir):
        with pytest.raises(SourcePathError):
            prepare_environment(source, target_dir)
