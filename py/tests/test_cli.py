# RUN: python -m unittest discover -s tests -k cli

import json
import logging
import os
import tempfile
import unittest

from click.testing import CliRunner

from voxgig_reshape import __version__
from voxgig_reshape.cli import main
from voxgig_reshape.log import ENV_LOG_LEVEL, resolve_env_log_level, resolve_level


SOURCE = {
    'retailer': {'id': '12342'},
    'ids': ['34554543', '7643534', '512342'],
}


class TestCli(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.source = self.write('source.json', SOURCE)

    def write(self, name, data):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(data if isinstance(data, str) else json.dumps(data))
        return path

    def invoke(self, args, input=None):
        return self.runner.invoke(main, args, input=input)


    def test_cli_transform(self):
        template = self.write('template.json', {
            'account_id': '/retailer/id',
            '[items]': {'...id': '/ids', 'kind': "'item'"},
        })
        result = self.invoke([self.source, template])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.output), {
            'account_id': '12342',
            'items': [
                {'id': '34554543', 'kind': 'item'},
                {'id': '7643534', 'kind': 'item'},
                {'id': '512342', 'kind': 'item'},
            ],
        })


    def test_cli_indent(self):
        template = self.write('template.json', {'a': '/retailer/id'})
        result = self.invoke([self.source, template, '--indent', '0'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output, '{"a":"12342"}\n')

        result = self.invoke([self.source, template])
        self.assertEqual(result.output, '{\n  "a": "12342"\n}\n')


    def test_cli_stdin(self):
        template = self.write('template.json', {'ids': '/ids'})
        result = self.invoke(['-', template], input=json.dumps(SOURCE))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.output), {'ids': SOURCE['ids']})

        result = self.invoke(['-', '-'], input='{}')
        self.assertEqual(result.exit_code, 2)
        self.assertIn('cannot both be read from stdin', result.output)


    def test_cli_output_file(self):
        template = self.write('template.json', {'id': '/retailer/id'})
        outpath = os.path.join(self.tmpdir.name, 'out.json')
        result = self.invoke([self.source, template, '-o', outpath])
        self.assertEqual(result.exit_code, 0, result.output)
        with open(outpath, 'r', encoding='utf-8') as f:
            self.assertEqual(json.load(f), {'id': '12342'})


    def test_cli_many(self):
        template = self.write('template.json', [{'a': '/retailer/id'}, {'b': '/ids'}])
        result = self.invoke([self.source, template, '--many'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.output),
                         [{'a': '12342'}, {'b': SOURCE['ids']}])


    def test_cli_missing(self):
        template = self.write('template.json', {'x': '/nope'})

        result = self.invoke([self.source, template])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error: Failed to resolve path /nope", result.output)

        result = self.invoke([self.source, template, '--missing', 'null'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.output), {'x': None})


    def test_cli_max_depth(self):
        template = self.write('template.json', {'a': {'b': {'c': "'x'"}}})
        result = self.invoke([self.source, template, '--max-depth', '2'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('Maximum template depth 2 exceeded', result.output)

        result = self.invoke([self.source, template, '--max-depth', '0'])
        self.assertEqual(result.exit_code, 2)


    def test_cli_bad_json(self):
        template = self.write('template.json', '{"a": ')
        result = self.invoke([self.source, template])
        self.assertEqual(result.exit_code, 2)
        self.assertIn('invalid JSON', result.output)

        template = os.path.join(self.tmpdir.name, 'latin1.json')
        with open(template, 'wb') as f:
            f.write(b'{"a": "caf\xe9"}')
        result = self.invoke([self.source, template])
        self.assertEqual(result.exit_code, 2)
        self.assertIn('invalid JSON', result.output)
        self.assertNotIsInstance(result.exception, UnicodeDecodeError)


    def test_cli_missing_file(self):
        result = self.invoke([self.source, os.path.join(self.tmpdir.name, 'nope.json')])
        self.assertEqual(result.exit_code, 2)


    def test_cli_version(self):
        result = self.invoke(['--version'])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)


class TestLogLevel(unittest.TestCase):

    def setUp(self):
        self.saved = os.environ.pop(ENV_LOG_LEVEL, None)

    def tearDown(self):
        os.environ.pop(ENV_LOG_LEVEL, None)
        if self.saved is not None:
            os.environ[ENV_LOG_LEVEL] = self.saved


    def test_log_env(self):
        self.assertEqual(resolve_env_log_level(), None)

        os.environ[ENV_LOG_LEVEL] = 'debug'
        self.assertEqual(resolve_env_log_level(), logging.DEBUG)

        os.environ[ENV_LOG_LEVEL] = '20'
        self.assertEqual(resolve_env_log_level(), 20)

        os.environ[ENV_LOG_LEVEL] = 'LOUD'
        self.assertEqual(resolve_env_log_level(), None)


    def test_log_flags(self):
        self.assertEqual(resolve_level(), logging.WARNING)
        self.assertEqual(resolve_level(verbose=1), logging.INFO)
        self.assertEqual(resolve_level(verbose=5), logging.DEBUG)
        self.assertEqual(resolve_level(quiet=1), logging.ERROR)
        self.assertEqual(resolve_level(quiet=9), logging.CRITICAL)

        os.environ[ENV_LOG_LEVEL] = 'ERROR'
        self.assertEqual(resolve_level(), logging.ERROR)
        self.assertEqual(resolve_level(verbose=1), logging.INFO)


if __name__ == "__main__":
    unittest.main()
