"""
chipsimkit CLI - Command Line Interface for ChIP-seq read simulation.

Usage:
    chipsim <command> [options]
"""

import click

from chipsimkit import __version__
from chipsimkit.simulate.chipsim.errors import SimulationError


@click.group()
@click.version_option(version=__version__, prog_name="chipsimkit")
def main():
    """chipsimkit - ChIP-seq read simulation.

    Use 'chipsim <command> --help' for detailed usage of each command.
    """
    pass


@main.command("simulate")
@click.option("-r", "--reference", help="Reference FASTA (.fa/.fasta/.gz) or .fai index")
@click.option("-a", "--assembly", type=click.Choice(["hg38", "GRCh38"]),
              help="Built-in chromosome sizes instead of a FASTA")
@click.option("-l", "--length", type=int, help="Single synthetic reference length (bp)")
@click.option("--chrom", default="chr1", help="Name of the synthetic reference (with --length)")
@click.option("-c", "--chromosome", "chromosomes", multiple=True,
              help="Reference sequence to simulate (repeatable; default all)")
@click.option("-o", "--output", required=True, help="Output directory")
@click.option("--config", "config_file", help="Sample sheet or config file (YAML/JSON)")
@click.option("-p", "--preset", "presets", multiple=True,
              type=click.Choice(["default", "chip", "input"]),
              help="Sample preset (repeatable; default chip)")
@click.option("-n", "--n-reads", type=int, help="Reads per chromosome run")
@click.option("--replicates", type=int, help="Replicates per sample")
@click.option("--max-retries", type=int, help="Region realizations tried before giving up")
@click.option("--seed", type=int, help="Random seed")
@click.option("--save-density", is_flag=True, help="Write densities and kernel (.npz)")
@click.option("--plot", is_flag=True, help="Write diagnostic figures")
@click.option("--compress", is_flag=True, help="Compress read tables (gzip)")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def simulate(reference, assembly, length, chrom, chromosomes, output, config_file,
             presets, n_reads, replicates, max_retries, seed, save_density, plot,
             compress, verbose):
    """Simulate ChIP-seq read positions.

    Binding sites are placed by a two-state Markov chain, converted into
    strand read densities with a fragment kernel and sampled into 0-based
    read positions, per sample, replicate and chromosome.

    Reference: give exactly one of --reference, --assembly or --length.
    """
    import yaml

    from chipsimkit.simulate.chip import run_chip_simulation

    try:
        run_chip_simulation(
            output_dir=output,
            reference=reference,
            assembly=assembly,
            length=length,
            chrom=chrom,
            chromosomes=list(chromosomes) or None,
            config_file=config_file,
            presets=list(presets) or None,
            n_reads=n_reads,
            replicates=replicates,
            seed=seed,
            max_retries=max_retries,
            save_density=save_density,
            plot=plot,
            compress=compress,
            verbose=verbose,
        )
    except (SimulationError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        raise click.ClickException(str(e))


@main.command("regions")
@click.option("-l", "--length", type=int, required=True, help="Reference length (bp)")
@click.option("--chrom", default="chr1", help="Reference name")
@click.option("-o", "--output", required=True, help="Output BED file")
@click.option("--config", "config_file", help="Config file (YAML)")
@click.option("-p", "--preset", default="chip", type=click.Choice(["default", "chip", "input"]),
              help="Preset used without --config")
@click.option("--seed", type=int, help="Random seed")
def regions(length, chrom, output, config_file, preset, seed):
    """Place binding/background regions and write them as BED."""
    import yaml

    from chipsimkit.simulate.chipsim.config import PRESETS, SimConfig
    from chipsimkit.simulate.chipsim.io_utils import write_regions_bed
    from chipsimkit.simulate.chipsim.models import RegionKind
    from chipsimkit.simulate.chipsim.pipeline import place_regions
    from chipsimkit.simulate.chipsim.regions import count_kind

    try:
        config = SimConfig.from_yaml(config_file) if config_file else PRESETS[preset]()
        if seed is not None:
            config.seed = seed
        config.check(length)
        placed, attempts = place_regions(config, length)
    except (SimulationError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        raise click.ClickException(str(e))

    write_regions_bed(placed, output, chrom, length)
    click.echo(
        f"{len(placed)} regions ({count_kind(placed, RegionKind.BINDING)} binding, "
        f"{attempts} attempt(s)) written to {output}"
    )


@main.command("init-config")
@click.option("-o", "--output", required=True, help="Output YAML file")
@click.option("-p", "--preset", default="default", type=click.Choice(["default", "chip", "input"]),
              help="Preset to write")
def init_config(output, preset):
    """Write a preset configuration as YAML."""
    from chipsimkit.simulate.chipsim.config import PRESETS
    PRESETS[preset]().to_yaml(output)
    click.echo(f"Wrote {preset} configuration to {output}")


if __name__ == "__main__":
    main()
