import gzip
import pytest

from alnfeat.core.cigar import parse_cigar
from alnfeat.core.models import AlignmentRecord


def paf_line(query, query_len, query_start, query_end, strand,
             target, target_len, target_start, target_end, cigar):
    """Build a PAF line with a cg:Z: tag; matches/block columns are filler."""
    block = max(query_end - query_start, target_end - target_start)
    fields = [query, query_len, query_start, query_end, strand,
              target, target_len, target_start, target_end, block, block, 60,
              "tp:A:P", f"cg:Z:{cigar}"]
    return "\t".join(str(f) for f in fields)


def make_record(cigar, query_start=0, query_end=None, target_start=0, target_end=None,
                strand='+', query_len=100, target_len=100, query_name="q1", target_name="t1"):
    """AlignmentRecord whose ends default to what the CIGAR consumes."""
    operations = parse_cigar(cigar)
    if query_end is None:
        query_end = query_start + sum(op.length for op in operations if op.operation in "MI=X")
    if target_end is None:
        target_end = target_start + sum(op.length for op in operations if op.operation in "MDN=X")
    return AlignmentRecord(
        query_name=query_name, query_len=query_len,
        query_start=query_start, query_end=query_end, strand=strand,
        target_name=target_name, target_len=target_len,
        target_start=target_start, target_end=target_end,
        operations=operations,
    )


@pytest.fixture
def paf_file(tmp_path):
    """
    Three records:
    line 1: valid, 5M2D5M over q1[0,10) / t1[0,12)
    line 2: unknown CIGAR operation
    line 3: CIGAR consumes 10 target bases but the record spans 12
    """
    p = tmp_path / "alignments.paf"
    lines = [
        paf_line("q1", 20, 0, 10, "+", "t1", 30, 0, 12, "5M2D5M"),
        paf_line("q1", 20, 0, 10, "+", "t1", 30, 0, 12, "5M2Q5M"),
        paf_line("q2", 20, 0, 10, "+", "t1", 30, 0, 12, "10M"),
    ]
    p.write_text("\n".join(lines) + "\n")
    return p


@pytest.fixture
def paf_gz_file(tmp_path, paf_file):
    p = tmp_path / "alignments.paf.gz"
    with gzip.open(p, "wt") as f:
        f.write(paf_file.read_text())
    return p


@pytest.fixture
def target_bed(tmp_path):
    p = tmp_path / "target.bed"
    p.write_text(
        "track name=targets\n"
        "t1\t4\t8\tfeatA\t0\t+\n"
        "t1\t20\t25\tfeatB\t0\t-\n"
        "t9\t0\t5\tfeatC\t0\t+\n"
    )
    return p


@pytest.fixture
def query_bed(tmp_path):
    p = tmp_path / "query.bed"
    p.write_text(
        "q1\t0\t3\tqA\t0\t+\n"
        "q1\t8\t15\tqB\t0\t+\n"
    )
    return p


@pytest.fixture
def target_gff(tmp_path):
    """Same target intervals as target_bed, in 1-based GFF3 coordinates."""
    p = tmp_path / "target.gff3"
    content = """##gff-version 3
t1\ttest\tgene\t5\t8\t.\t+\t.\tID=gene1;Name=featA
t1\ttest\texon\t21\t25\t.\t-\t.\tID=exon1;Parent=gene1
t9\ttest\tgene\t1\t5\t.\t+\t.\tID=gene2
"""
    p.write_text(content)
    return p


@pytest.fixture
def joined_file(tmp_path):
    """Joined alignment + query feature + target feature rows."""
    p = tmp_path / "joined.tsv"
    aln = paf_line("q1", 20, 0, 10, "+", "t1", 30, 0, 12, "5M2D5M").split("\t")
    paf_part = "\t".join(aln[:12] + [aln[13]])
    rows = [
        # consistent pair
        paf_part + "\tq1\t2\t8\tfeatA\t0\t+\tgene\tt1\t4\t8\tfeatA\t0\t+\tgene",
        # feature names differ
        paf_part + "\tq1\t2\t8\tfeatA\t0\t+\tgene\tt1\t4\t8\tfeatZ\t0\t+\tgene",
        # opposite feature strands on a forward alignment
        paf_part + "\tq1\t2\t8\tfeatA\t0\t+\tgene\tt1\t4\t8\tfeatA\t0\t-\tgene",
    ]
    p.write_text("\n".join(rows) + "\n")
    return p
