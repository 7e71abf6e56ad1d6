"""Tests for the per-reference simulation driver."""

import numpy as np
import pytest

from chipsimkit.simulate.chipsim import (
    DegenerateRealizationError,
    ParameterError,
    RegionKind,
    SimConfig,
    get_input_config,
    simulate_chromosome,
)
from chipsimkit.simulate.chipsim.density import expected_mass
from chipsimkit.simulate.chipsim.pipeline import place_regions


@pytest.fixture
def config():
    config = SimConfig(name="test")
    config.fragments.n_samples = 20000
    config.reads.n_reads = 2000
    return config


class TestSimulateChromosome:

    def test_end_to_end(self, config):
        sim = simulate_chromosome(config, 20000, seed=1, chrom="chrT")

        assert sim.chrom == "chrT"
        assert sim.density.size == 20000
        assert len(sim.read_density) == 20000
        assert sim.n_binding > 0
        assert sim.kernel.sum() == pytest.approx(1.0)
        assert sim.reads.total + sim.reads.n_filtered == 2000
        assert sim.density.sum() == pytest.approx(
            expected_mass(sim.regions, 20000, config.binding.length)
        )

    def test_summary(self, config):
        summary = simulate_chromosome(config, 20000, seed=1).summary()
        assert set(summary) == {
            "chrom", "ref_length", "n_regions", "n_binding", "attempts",
            "n_forward", "n_reverse", "n_filtered",
        }
        assert summary["n_forward"] + summary["n_reverse"] + summary["n_filtered"] == 2000

    def test_reproducible(self, config):
        a = simulate_chromosome(config, 20000, seed=5)
        b = simulate_chromosome(config, 20000, seed=5)
        assert a.regions == b.regions
        np.testing.assert_array_equal(a.kernel, b.kernel)
        np.testing.assert_array_equal(a.reads.forward, b.reads.forward)
        np.testing.assert_array_equal(a.reads.reverse, b.reads.reverse)

    def test_seed_from_config(self, config):
        config.seed = 9
        a = simulate_chromosome(config, 20000)
        b = simulate_chromosome(config, 20000, seed=9)
        assert a.regions == b.regions
        np.testing.assert_array_equal(a.reads.forward, b.reads.forward)

    def test_seed_sequence_accepted(self, config):
        seq = np.random.SeedSequence(123, spawn_key=(0, 1, 0))
        a = simulate_chromosome(config, 20000, seed=seq)
        b = simulate_chromosome(config, 20000, seed=np.random.SeedSequence(123, spawn_key=(0, 1, 0)))
        np.testing.assert_array_equal(a.reads.forward, b.reads.forward)

    def test_region_stage_alone_matches(self, config):
        config.seed = 7
        regions, attempts = place_regions(config, 20000)
        sim = simulate_chromosome(config, 20000)
        assert regions == sim.regions
        assert attempts == sim.attempts

    def test_different_seeds_differ(self, config):
        a = simulate_chromosome(config, 20000, seed=1)
        b = simulate_chromosome(config, 20000, seed=2)
        assert a.regions != b.regions

    def test_n_reads_override(self, config):
        sim = simulate_chromosome(config, 20000, seed=1, n_reads=300)
        assert sim.reads.total + sim.reads.n_filtered == 300

    def test_reads_inside_reference(self, config):
        sim = simulate_chromosome(config, 20000, seed=3)
        read_length = config.reads.read_length
        assert (sim.reads.forward + read_length <= 20000).all()
        assert (sim.reads.reverse - read_length + 1 >= 0).all()

    def test_mitochondrial_reference(self, config):
        sim = simulate_chromosome(config, 16569, seed=4, chrom="chrM")
        assert sim.regions[-1].kind is RegionKind.BACKGROUND
        assert sim.regions[-1].end >= 16569


class TestFailureModes:

    def test_reference_shorter_than_background(self, config):
        config.max_retries = 3
        with pytest.raises(DegenerateRealizationError):
            simulate_chromosome(config, 100, seed=0)

    def test_reference_shorter_than_binding(self, config):
        with pytest.raises(ParameterError):
            simulate_chromosome(config, 40, seed=0)

    def test_input_control(self):
        config = get_input_config()
        config.fragments.n_samples = 20000
        config.reads.n_reads = 1000
        sim = simulate_chromosome(config, 10000, seed=0)
        assert sim.n_binding == 0
        assert sim.attempts == 1
        assert sim.reads.total > 0
