import pathlib

import pytest

from sitepipe.dependencies import NodeModuleDependency, NpmDependency, PipDependency, WebExecDependency, all_of


MISSING_EXEC = WebExecDependency('no-such-tool', 'https://example.com', 'sitepipe-no-such-tool')


def test_pip_dependency():
    assert PipDependency('pytest').satisfied
    missing = PipDependency('sitepipe-missing', check_name='sitepipe_missing_module')
    assert not missing.satisfied
    assert missing.install_hint == 'pip install sitepipe-missing'


def test_exec_dependency():
    assert not MISSING_EXEC.satisfied
    assert MISSING_EXEC.install_hint == 'https://example.com'
    assert str(MISSING_EXEC) == 'no-such-tool'


def test_npm_hint():
    assert NpmDependency('webpack', 'webpack webpack-cli').install_hint == 'npm install --global webpack webpack-cli'
    assert NpmDependency('postcss').install_hint == 'npm install --global postcss'


def test_node_module(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv('NODE_PATH', raising=False)
    dep = NodeModuleDependency('postcss-nested')
    assert not dep.satisfied
    assert dep.install_hint == 'npm install --save-dev postcss-nested'

    (tmp_path / 'node_modules' / 'postcss-nested').mkdir(parents=True)
    assert dep.satisfied


def test_node_module_on_node_path(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'global' / 'postcss-import').mkdir(parents=True)
    monkeypatch.setenv('NODE_PATH', str(tmp_path / 'global'))
    assert NodeModuleDependency('postcss-import').satisfied


def test_all_of():
    dep = all_of([PipDependency('pytest'), MISSING_EXEC, PipDependency('sitepipe-missing', check_name='sitepipe_x')])
    assert not dep.satisfied
    assert dep.needed
    assert str(dep) == 'pytest & no-such-tool & sitepipe-missing'
    assert dep.install_hint == 'https://example.com; pip install sitepipe-missing'

    assert (PipDependency('pytest') & PipDependency('lxml')).satisfied
