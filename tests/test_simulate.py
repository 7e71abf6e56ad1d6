"""Tests for the simulate module."""

import gzip
import subprocess
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
import yaml

from chipsimkit.simulate.chipsim.io_utils import (
    load_read_positions,
    read_reference_lengths,
    regions_to_frame,
    write_read_positions,
)
from chipsimkit.simulate.chipsim.models import ReadPositions, Region, RegionKind

CLI = [sys.executable, "-m", "chipsimkit.cli"]


class TestSimulateImports:
    """Test that simulate module can be imported."""

    def test_import_module(self):
        from chipsimkit.simulate import run_chip_simulation
        assert callable(run_chip_simulation)

    def test_import_core(self):
        from chipsimkit.simulate.chipsim import simulate_chromosome, SimConfig
        assert callable(simulate_chromosome)
        assert SimConfig().name == "TFChip"


class TestCLICommands:
    """Test CLI command availability."""

    def test_simulate_help(self):
        result = subprocess.run(CLI + ["simulate", "--help"], capture_output=True, text=True)
        assert result.returncode == 0
        assert "Simulate ChIP-seq read positions" in result.stdout
        assert "--reference" in result.stdout
        assert "--n-reads" in result.stdout

    def test_regions_help(self):
        result = subprocess.run(CLI + ["regions", "--help"], capture_output=True, text=True)
        assert result.returncode == 0
        assert "--length" in result.stdout

    def test_regions_missing_config(self, tmp_path):
        result = subprocess.run(
            CLI + ["regions", "-l", "1000", "-o", str(tmp_path / "r.bed"),
                   "--config", str(tmp_path / "missing.yaml")],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 1
        assert "Error" in result.stderr
        assert "Traceback" not in result.stderr

    def test_regions_malformed_config(self, tmp_path):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("markov: [0.05, 0.95\n")
        result = subprocess.run(
            CLI + ["regions", "-l", "1000", "-o", str(tmp_path / "r.bed"),
                   "--config", str(config_path)],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 1
        assert "Traceback" not in result.stderr


@pytest.fixture
def test_reference(tmp_path):
    """Create a temporary test reference genome."""
    rng = np.random.default_rng(42)
    ref_path = tmp_path / "test_ref.fa"

    with open(ref_path, "w") as f:
        for chrom, length in [("chr1", 50000), ("chr2", 30000), ("empty", 0)]:
            f.write(f">{chrom} test sequence\n")
            seq = "".join(rng.choice(list("ACGT"), size=length))
            for i in range(0, length, 80):
                f.write(seq[i:i + 80] + "\n")

    return ref_path


class TestReferenceLengths:

    def test_fasta(self, test_reference):
        assert read_reference_lengths(test_reference) == {"chr1": 50000, "chr2": 30000}

    def test_gzipped_fasta(self, test_reference, tmp_path):
        gz_path = tmp_path / "test_ref.fa.gz"
        with open(test_reference, "rb") as src, gzip.open(gz_path, "wb") as dst:
            dst.write(src.read())
        assert read_reference_lengths(gz_path) == {"chr1": 50000, "chr2": 30000}

    def test_fai_preferred(self, test_reference):
        fai = Path(str(test_reference) + ".fai")
        fai.write_text("chr1\t1000\t10\t80\t81\nchrM\t16569\t1100\t80\t81\n")
        assert read_reference_lengths(test_reference) == {"chr1": 1000, "chrM": 16569}
        assert read_reference_lengths(fai, ["chrM"]) == {"chrM": 16569}

    def test_subset(self, test_reference):
        assert read_reference_lengths(test_reference, ["chr2"]) == {"chr2": 30000}
        with pytest.raises(ValueError):
            read_reference_lengths(test_reference, ["chr9"])

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_reference_lengths(tmp_path / "missing.fa")


class TestOutputs:

    def test_read_table(self, tmp_path):
        reads = ReadPositions(np.array([5, 10]), np.array([50]), n_filtered=1)
        path = write_read_positions(reads, tmp_path / "chr1.reads.tsv", "chr1", compress=True)
        assert path.name == "chr1.reads.tsv.gz"

        df = load_read_positions(path)
        assert list(df.columns) == ["chrom", "position", "strand"]
        assert df["position"].tolist() == [5, 10, 50]
        assert df["strand"].tolist() == ["+", "+", "-"]

    def test_regions_clipped(self):
        regions = [
            Region(RegionKind.BACKGROUND, 0, 500, 12.5),
            Region(RegionKind.BINDING, 500, 50, 300.0),
            Region(RegionKind.BACKGROUND, 550, 500, 3.0),
        ]
        df = regions_to_frame(regions, "chr1", ref_length=800)
        assert df["end"].tolist() == [500, 550, 800]
        assert df["name"].tolist() == ["Background_1", "Binding_2", "Background_3"]


class TestRunChipSimulation:
    """Functional tests of the whole run."""

    def test_synthetic_length(self, tmp_path):
        from chipsimkit.simulate import run_chip_simulation

        out = tmp_path / "out"
        summary = run_chip_simulation(
            output_dir=str(out),
            length=20000,
            chrom="chrS",
            presets=["chip", "input"],
            n_reads=500,
            replicates=2,
            seed=7,
            save_density=True,
        )

        assert len(summary) == 4
        assert set(summary["sample"]) == {"TFChip", "input"}
        assert (summary["n_forward"] + summary["n_reverse"] + summary["n_filtered"] == 500).all()
        assert (summary.loc[summary["sample"] == "input", "n_binding"] == 0).all()

        rep_dir = out / "TFChip" / "rep2"
        assert (rep_dir / "chrS.reads.tsv").exists()
        assert (rep_dir / "chrS.regions.bed").exists()
        with np.load(rep_dir / "chrS.density.npz") as npz:
            assert set(npz.files) == {"binding", "forward", "reverse", "kernel"}
            assert npz["forward"].size == 20000
        assert (out / "TFChip" / "config_used.yaml").exists()

        table = pd.read_csv(out / "simulation_summary.tsv", sep="\t")
        assert len(table) == 4

    def test_reproducible(self, tmp_path):
        from chipsimkit.simulate import run_chip_simulation

        kwargs = dict(length=20000, presets=["chip"], n_reads=300, replicates=1, seed=11)
        run_chip_simulation(output_dir=str(tmp_path / "a"), **kwargs)
        run_chip_simulation(output_dir=str(tmp_path / "b"), **kwargs)

        a = load_read_positions(tmp_path / "a" / "TFChip" / "rep1" / "chr1.reads.tsv")
        b = load_read_positions(tmp_path / "b" / "TFChip" / "rep1" / "chr1.reads.tsv")
        pd.testing.assert_frame_equal(a, b)

    def test_fasta_reference(self, test_reference, tmp_path):
        from chipsimkit.simulate import run_chip_simulation

        summary = run_chip_simulation(
            output_dir=str(tmp_path / "out"),
            reference=str(test_reference),
            chromosomes=["chr2"],
            presets=["chip"],
            n_reads=200,
            replicates=1,
            seed=3,
            compress=True,
        )
        assert summary["chrom"].tolist() == ["chr2"]
        assert summary["ref_length"].tolist() == [30000]
        assert summary["reads_file"].iloc[0].endswith("chr2.reads.tsv.gz")

    def test_requires_one_reference(self, tmp_path):
        from chipsimkit.simulate import run_chip_simulation

        with pytest.raises(ValueError):
            run_chip_simulation(output_dir=str(tmp_path), length=1000, assembly="hg38")

    def test_duplicate_sample_names(self, tmp_path):
        from chipsimkit.simulate import run_chip_simulation

        with pytest.raises(ValueError):
            run_chip_simulation(output_dir=str(tmp_path), length=20000, presets=["chip", "chip"])

    def test_sample_sheet_seeds(self, tmp_path):
        from chipsimkit.simulate import run_chip_simulation

        sheet = tmp_path / "samples.yaml"
        sheet.write_text(
            "samples:\n"
            "  a:\n"
            "    EF: 5\n"
            "  b:\n"
            "    EF: 5\n"
            "    seed: 5\n"
        )
        kwargs = dict(length=20000, config_file=str(sheet), n_reads=300, replicates=1)
        first = run_chip_simulation(output_dir=str(tmp_path / "first"), **kwargs)
        second = run_chip_simulation(output_dir=str(tmp_path / "second"), **kwargs)

        b_first = load_read_positions(tmp_path / "first" / "b" / "rep1" / "chr1.reads.tsv")
        b_second = load_read_positions(tmp_path / "second" / "b" / "rep1" / "chr1.reads.tsv")
        pd.testing.assert_frame_equal(b_first, b_second)
        row = ["n_binding", "n_forward", "n_regions"]
        assert (first.loc[first["sample"] == "b", row].values
                == second.loc[second["sample"] == "b", row].values).all()

        with open(tmp_path / "first" / "b" / "config_used.yaml") as f:
            assert yaml.safe_load(f)["seed"] == 5

    def test_rerun_from_config_used(self, tmp_path):
        from chipsimkit.simulate import run_chip_simulation

        run_chip_simulation(
            output_dir=str(tmp_path / "first"), length=20000, presets=["chip"],
            n_reads=300, replicates=1,
        )
        used = tmp_path / "first" / "TFChip" / "config_used.yaml"
        with open(used) as f:
            assert isinstance(yaml.safe_load(f)["seed"], int)

        run_chip_simulation(output_dir=str(tmp_path / "again"), length=20000, config_file=str(used))

        a = load_read_positions(tmp_path / "first" / "TFChip" / "rep1" / "chr1.reads.tsv")
        b = load_read_positions(tmp_path / "again" / "TFChip" / "rep1" / "chr1.reads.tsv")
        pd.testing.assert_frame_equal(a, b)

    def test_run_seed_gives_samples_distinct_seeds(self):
        from chipsimkit.simulate.chip import sample_seed
        from chipsimkit.simulate.chipsim import SimConfig

        config = SimConfig(seed=5)
        assert sample_seed(config, 0, 7) != sample_seed(config, 1, 7)
        assert sample_seed(config, 0, 7) == sample_seed(config, 0, 7)
        assert sample_seed(config, 0) == 5


@pytest.mark.slow
class TestCLIFunctional:
    """Run the command line end to end."""

    def test_simulate_with_plots(self, tmp_path):
        out = tmp_path / "cli_out"
        result = subprocess.run(
            CLI + [
                "simulate", "-l", "20000", "-o", str(out), "-p", "chip",
                "-n", "500", "--replicates", "1", "--seed", "1", "--plot",
            ],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0, result.stderr
        rep_dir = out / "TFChip" / "rep1"
        assert (rep_dir / "chr1.reads.tsv").exists()
        assert (rep_dir / "chr1.profile.png").exists()
        assert (rep_dir / "chr1.kernel.png").exists()
        assert (rep_dir / "chr1.reads.png").exists()

    def test_degenerate_reference_fails_cleanly(self, tmp_path):
        result = subprocess.run(
            CLI + [
                "simulate", "-l", "100", "-o", str(tmp_path / "out"),
                "-n", "10", "--max-retries", "2", "--seed", "1",
            ],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0
        assert "No binding region" in result.stderr

    def test_regions_and_init_config(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        result = subprocess.run(
            CLI + ["init-config", "-o", str(config_path), "-p", "chip"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert config_path.exists()

        bed = tmp_path / "regions.bed"
        result = subprocess.run(
            CLI + ["regions", "-l", "20000", "-o", str(bed), "--config", str(config_path),
                   "--seed", "2"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0, result.stderr
        df = pd.read_csv(bed, sep="\t", header=None)
        assert df.iloc[-1, 2] == 20000

    def test_regions_match_simulation(self, tmp_path):
        from chipsimkit.simulate.chipsim import SimConfig, simulate_chromosome

        bed = tmp_path / "regions.bed"
        result = subprocess.run(
            CLI + ["regions", "-l", "20000", "-o", str(bed), "-p", "default", "--seed", "7"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0, result.stderr
        df = pd.read_csv(bed, sep="\t", header=None)
        cli_starts = df.loc[df[5] == "Binding", 1].tolist()

        config = SimConfig(seed=7)
        config.reads.n_reads = 100
        sim = simulate_chromosome(config, 20000)
        starts = [r.start for r in sim.regions if r.kind is RegionKind.BINDING]
        assert cli_starts == starts
        assert len(df) == len(sim.regions)


class TestReferenceSources:

    def test_assembly_sizes(self):
        from chipsimkit.utils import get_genome_sizes
        assert get_genome_sizes("hg38", ["chrM"]) == {"chrM": 16569}
        assert get_genome_sizes("GRCh38")["MT"] == 16569
        with pytest.raises(ValueError):
            get_genome_sizes("mm10")

    def test_exactly_one_source(self, test_reference):
        from chipsimkit.utils import require_one_reference
        assert require_one_reference(str(test_reference), None, None) == "reference"
        assert require_one_reference(None, None, 1000) == "length"
        with pytest.raises(ValueError):
            require_one_reference(None, None, None)
        with pytest.raises(FileNotFoundError):
            require_one_reference("/nonexistent/ref.fa", None, None)


class TestLogging:

    def test_get_logger_reuses_handlers(self):
        from chipsimkit.utils import get_logger, setup_logger
        logger = setup_logger("chipsimkit.test_logging")
        assert get_logger("chipsimkit.test_logging") is logger
        assert len(logger.handlers) == 1

    def test_get_logger_creates_handler(self):
        from chipsimkit.utils import get_logger
        logger = get_logger("chipsimkit.test_fresh")
        assert logger.handlers
