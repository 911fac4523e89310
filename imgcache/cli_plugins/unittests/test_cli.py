import io
import json
import os
import shutil
import subprocess
import tempfile
import unittest
from unittest.mock import patch

from imgcache.main import _discover_plugins, default_subcommand, main


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["sbatch"], returncode=returncode, stdout=stdout, stderr=stderr)


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        env_patcher = patch.dict(os.environ, {"USER": "alice"}, clear=True)
        env_patcher.start()
        self.addCleanup(env_patcher.stop)

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def run_main(self, argv):
        with patch("sys.stdout", new_callable=io.StringIO) as out, \
                patch("sys.stderr", new_callable=io.StringIO) as err:
            code = main(argv)
        return code, out.getvalue(), err.getvalue()


class TestPluginDiscovery(unittest.TestCase):
    def test_discovers_all_subcommands(self):
        self.assertEqual(set(_discover_plugins()), {"cache", "gpu", "array"})


@patch("imgcache.lib.exec_lib.subprocess.run")
class TestCacheCommand(CliTestCase):
    def test_success_prints_job_id(self, mock_run):
        mock_run.return_value = completed(stdout="12345\n")

        code, out, err = self.run_main(["cache", "registry.example/app:1.0"])

        self.assertEqual(code, 0)
        self.assertEqual(out, "12345\n")
        mock_run.assert_called_once()
        argv = mock_run.call_args[0][0]
        self.assertIn("--nodes=4", argv)
        self.assertIn("--export=ALL,TMPDIR=/ssd/home/alice/TEMP", argv)
        wrap = [a for a in argv if a.startswith("--wrap=")][0]
        self.assertIn("registry.example/app:1.0", wrap)
        self.assertIn("--authfile /mnt/apps/etc/auth.json", wrap)

    def test_nodes_option(self, mock_run):
        mock_run.return_value = completed(stdout="1\n")
        code, _, _ = self.run_main(["cache", "img:latest", "--nodes", "8"])
        self.assertEqual(code, 0)
        self.assertIn("--nodes=8", mock_run.call_args[0][0])

    def test_empty_image_exits_2_without_submitting(self, mock_run):
        code, out, err = self.run_main(["cache", ""])

        self.assertEqual(code, 2)
        self.assertEqual(out, "")
        self.assertIn("image reference is required", err)
        mock_run.assert_not_called()

    def test_missing_image_is_usage_error(self, mock_run):
        with self.assertRaises(SystemExit) as cm:
            self.run_main(["cache"])
        self.assertEqual(cm.exception.code, 2)
        mock_run.assert_not_called()

    def test_zero_nodes_exits_2(self, mock_run):
        code, _, _ = self.run_main(["cache", "img:latest", "--nodes", "0"])
        self.assertEqual(code, 2)
        mock_run.assert_not_called()

    def test_bad_nodes_reported_before_user_lookup(self, mock_run):
        with patch.dict(os.environ, {}, clear=True):
            code, _, err = self.run_main(["cache", "img:latest", "--nodes", "0"])
        self.assertEqual(code, 2)
        self.assertIn("Node count must be a positive integer", err)
        mock_run.assert_not_called()

    def test_shorthand_expansion_in_help(self, mock_run):
        with patch("sys.stdout", new_callable=io.StringIO) as out, self.assertRaises(SystemExit):
            main(["cache", "--help"])
        self.assertIn("shorthands", out.getvalue())
        epilog = _discover_plugins()["cache"].get_epilog()
        self.assertIn("freesurfer", epilog)
        self.assertIn("passed to podman unchanged", epilog)

    def test_scheduler_error_exits_1_without_retry(self, mock_run):
        mock_run.return_value = completed(
            returncode=1,
            stderr="sbatch: error: Batch job submission failed: Unable to contact slurm controller (connect failure)\n",
        )

        code, out, err = self.run_main(["cache", "registry.example/app:1.0"])

        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("Unable to contact slurm controller (connect failure)", err)
        mock_run.assert_called_once()

    def test_unresolved_user_exits_3(self, mock_run):
        with patch.dict(os.environ, {}, clear=True):
            code, _, err = self.run_main(["cache", "img:latest"])
        self.assertEqual(code, 3)
        self.assertIn("USER", err)
        mock_run.assert_not_called()

    def test_site_file(self, mock_run):
        mock_run.return_value = completed(stdout="5\n")
        site_file = os.path.join(self.tmp_dir, "site.json")
        with open(site_file, 'w') as f:
            json.dump({"node_count": 2, "auth_file": "/etc/imgcache/auth.json"}, f)

        code, _, _ = self.run_main(["--site_file", site_file, "cache", "img:latest"])

        self.assertEqual(code, 0)
        argv = mock_run.call_args[0][0]
        self.assertIn("--nodes=2", argv)
        self.assertIn("--authfile /etc/imgcache/auth.json", [a for a in argv if a.startswith("--wrap=")][0])

    def test_site_file_from_env(self, mock_run):
        mock_run.return_value = completed(stdout="5\n")
        site_file = os.path.join(self.tmp_dir, "site.yaml")
        with open(site_file, 'w') as f:
            f.write("node_count: 3\n")

        with patch.dict(os.environ, {"IMGCACHE_SITE_FILE": site_file}):
            code, _, _ = self.run_main(["cache", "img:latest"])

        self.assertEqual(code, 0)
        self.assertIn("--nodes=3", mock_run.call_args[0][0])

    def test_invalid_site_file_exits_4(self, mock_run):
        code, _, err = self.run_main(["--site_file", os.path.join(self.tmp_dir, "missing.json"), "cache", "img"])
        self.assertEqual(code, 4)
        self.assertIn("not found", err)
        mock_run.assert_not_called()


class TestDefaultSubcommand(unittest.TestCase):
    names = ["cache", "gpu", "array"]

    def test_inserts_cache_before_image(self):
        self.assertEqual(default_subcommand(["img:1", "--nodes", "2"], self.names), ["cache", "img:1", "--nodes", "2"])

    def test_skips_global_option_values(self):
        self.assertEqual(
            default_subcommand(["--site_file", "gpu", "--log-level=DEBUG", "img:1"], self.names),
            ["--site_file", "gpu", "--log-level=DEBUG", "cache", "img:1"],
        )

    def test_known_subcommand_untouched(self):
        self.assertEqual(default_subcommand(["gpu", "img", "run"], self.names), ["gpu", "img", "run"])

    def test_no_positional_untouched(self):
        self.assertEqual(default_subcommand(["--version"], self.names), ["--version"])
        self.assertEqual(default_subcommand([], self.names), [])


@patch("imgcache.lib.exec_lib.subprocess.run")
class TestBareImageForm(CliTestCase):
    def test_bare_image_submits_cache_job(self, mock_run):
        mock_run.return_value = completed(stdout="12345\n")

        code, out, _ = self.run_main(["registry.example/app:1.0"])

        self.assertEqual(code, 0)
        self.assertEqual(out, "12345\n")
        argv = mock_run.call_args[0][0]
        self.assertIn("--nodes=4", argv)
        self.assertIn("registry.example/app:1.0", [a for a in argv if a.startswith("--wrap=")][0])

    def test_bare_image_with_nodes_and_site_file(self, mock_run):
        mock_run.return_value = completed(stdout="7\n")
        site_file = os.path.join(self.tmp_dir, "site.yaml")
        with open(site_file, 'w') as f:
            f.write("auth_file: /etc/imgcache/auth.json\n")

        code, _, _ = self.run_main(["--site_file", site_file, "img:latest", "--nodes", "8"])

        self.assertEqual(code, 0)
        self.assertIn("--nodes=8", mock_run.call_args[0][0])

    def test_bare_empty_image_exits_2(self, mock_run):
        code, out, err = self.run_main([""])
        self.assertEqual(code, 2)
        self.assertEqual(out, "")
        self.assertIn("image reference is required", err)
        mock_run.assert_not_called()

    def test_bare_image_scheduler_error_exits_1(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="sbatch: error: invalid partition\n")
        code, out, err = self.run_main(["img:latest"])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("invalid partition", err)
        mock_run.assert_called_once()


@patch("imgcache.lib.exec_lib.subprocess.run")
class TestContainerCommands(CliTestCase):
    def test_gpu(self, mock_run):
        mock_run.return_value = completed(stdout="99\n")

        code, out, _ = self.run_main(
            ["gpu", "--sbatch_args=--time=01:00:00", "freesurfer", "recon-all", "-s", "subj01"]
        )

        self.assertEqual(code, 0)
        self.assertEqual(out, "99\n")
        argv = mock_run.call_args[0][0]
        script = mock_run.call_args[1]["input"]
        self.assertIn("--gres=gpu:a100:1", argv)
        self.assertIn("--time=01:00:00", argv)
        self.assertIn("docker.io/freesurfer/freesurfer:7.3.2 -s subj01", script)

    def test_array(self, mock_run):
        mock_run.return_value = completed(stdout="100\n")
        arg_file = os.path.join(self.tmp_dir, "subjects.txt")
        with open(arg_file, 'w') as f:
            f.write("subj01\nsubj02\n\n")

        code, out, _ = self.run_main(["array", "--max_tasks", "2", "freesurfer", "recon-all", arg_file])

        self.assertEqual(code, 0)
        self.assertEqual(out, "100\n")
        self.assertIn("--array=0-1%2", mock_run.call_args[0][0])

    def test_array_missing_file_exits_2(self, mock_run):
        code, _, err = self.run_main(["array", "freesurfer", "recon-all", os.path.join(self.tmp_dir, "nope.txt")])
        self.assertEqual(code, 2)
        self.assertIn("Unable to read argument file", err)
        mock_run.assert_not_called()


class TestNoSubcommand(CliTestCase):
    def test_prints_help(self):
        code, out, err = self.run_main([])
        self.assertEqual(code, 2)
        self.assertIn("usage: imgcache", err)


if __name__ == '__main__':
    unittest.main()
