import csv

import pytest

import experiments as ex


def _read_csv(path):
    with path.open(newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


@pytest.mark.parametrize("name", sorted(ex.GENERATOR_REGISTRY))
def test_generators_produce_requested_size(name):
    dataset_name, data = ex.generate_dataset(name, 500, seed=1)
    assert dataset_name == name
    assert isinstance(data, bytes)
    assert len(data) == 500


def test_generators_are_seeded():
    assert ex.gen_zipf_like(300, seed=4) == ex.gen_zipf_like(300, seed=4)
    assert ex.gen_english_like(300, seed=4) != ex.gen_english_like(300, seed=5)


def test_generator_alphabets():
    assert max(ex.gen_uniform(2000, alphabet=16, seed=0)) < 16
    assert max(ex.gen_zipf_like(2000, alphabet=64, seed=0)) < 64
    assert set(ex.gen_single_symbol(10)) == {ord('A')}
    assert set(ex.gen_english_like(2000, seed=0)) <= set(b" etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n")


def test_unknown_generator_falls_back():
    dataset_name, data = ex.generate_dataset("nope", 64, seed=0)
    assert dataset_name == "nope_fallback_uniform256"
    assert len(data) == 64


@pytest.mark.parametrize("pipeline", ex.PIPELINES)
def test_run_one(pipeline):
    data = ex.gen_english_like(4096, seed=3)
    row = ex.run_one(data, pipeline)
    assert row.correctness_ok == 1
    assert row.pipeline == pipeline
    assert row.file_size_bytes == 4096
    assert row.compressed_bytes == (row.encoded_bits + 7) // 8
    assert row.pad_bits == row.compressed_bytes * 8 - row.encoded_bits
    assert row.compression_ratio < 1.0
    assert 0.0 <= row.redundancy_bits < 1.0
    assert row.total_ms == pytest.approx(row.build_tree_ms + row.encode_ms + row.decode_ms)


def test_run_one_single_symbol():
    row = ex.run_one(ex.gen_single_symbol(100), "packed")
    assert row.correctness_ok == 1
    assert row.unique_symbols == 1
    assert row.encoded_bits == 100
    assert row.avg_code_length == 1.0
    assert row.entropy_bits == 0.0


def test_run_one_empty():
    row = ex.run_one(b"", "bitstring")
    assert row.correctness_ok == 1
    assert row.encoded_bits == 0
    assert row.compressed_bytes == 0


def test_run_one_unknown_pipeline():
    with pytest.raises(ValueError):
        ex.run_one(b"abc", "huffman+lzw")


def _rows():
    rows = []
    for run_id in (1, 2):
        for name in ("zipf64", "repetitive90"):
            _, data = ex.generate_dataset(name, 2048, seed=run_id)
            ex._record(rows, "exp1_distribution", name, run_id, data)
    return rows


def test_write_csv(tmp_path):
    rows = _rows()
    path = tmp_path / "metrics.csv"
    ex.write_csv(path, rows)
    read = _read_csv(path)
    assert len(read) == len(rows) == 8
    assert read[0]["exp_name"] == "exp1_distribution"
    assert "redundancy_bits" in read[0]


def test_group_summary(tmp_path):
    path = tmp_path / "summary.csv"
    ex.group_summary(_rows(), path)
    read = _read_csv(path)
    assert len(read) == 4
    for r in read:
        assert r["n_runs"] == "2"
        assert float(r["correctness_ok_rate"]) == 1.0
        assert float(r["compression_ratio_stdev"]) >= 0.0


def test_mean_stdev_single_value():
    assert ex.mean_stdev([3.0]) == (3.0, 0.0)


def test_plot_experiment_1(tmp_path):
    ex.plot_experiment_1(_rows(), tmp_path)
    assert (tmp_path / "exp1_compression_ratio.png").exists()
    assert (tmp_path / "exp1_decode_time.png").exists()
    assert (tmp_path / "exp1_total_time.png").exists()


def test_plot_experiment_2(tmp_path):
    rows = []
    for size in (512, 1024):
        _, data = ex.generate_dataset("zipf64", size, seed=0)
        ex._record(rows, "exp2_size_scaling", "zipf64", 1, data)
    ex.plot_experiment_2(rows, tmp_path)
    assert (tmp_path / "exp2_encode_time_zipf64.png").exists()
    assert (tmp_path / "exp2_decode_time_zipf64.png").exists()
    assert (tmp_path / "exp2_compression_ratio_zipf64.png").exists()


def test_plots_skip_missing_experiments(tmp_path):
    ex.plot_experiment_1([], tmp_path)
    ex.plot_experiment_2([], tmp_path)
    ex.plot_experiment_3([], tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_main_small_run(tmp_path, capsys):
    outdir = tmp_path / "results"
    code = ex.main([
        "--outdir", str(outdir),
        "--runs", "1",
        "--exp1_size_kb", "1",
        "--exp1_generators", "uniform128,english_like",
        "--no_exp2",
        "--exp3_size_kb", "1",
        "--exp3_generators", "zipf64,single_symbol",
    ])
    assert code == 0
    assert len(_read_csv(outdir / "metrics.csv")) == 8
    assert (outdir / "summary.csv").exists()
    assert (outdir / "exp3_code_length_vs_entropy.png").exists()
    assert "Correctness rate across all runs: 1.000" in capsys.readouterr().out
