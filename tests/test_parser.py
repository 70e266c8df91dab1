import pytest

from dashfeed.parser import (
    NoHeaderError,
    build_record,
    fit_cells,
    match_header,
    parse_records,
    pick_delimiter,
    repair_strategy,
    summarize,
)

EXPORT = """\ufeff# Codice Agente: A042
# Ragione Sociale: Bianchi Distribuzione
# Periodo: Gennaio-Settembre 2024
Report agenti B2B

## Obiettivi per provincia
Tipo_Dato\tProvincia\tAnno_Precedente\tAnno_Corrente\tPercentuale_Obiettivo
PROVINCIA\tMilano\t1.200,00\t1.350,50\t66,51%
PROVINCIA\tComo\t999999\t800\t99.999.900%

## Clienti
# righe ordinate per fatturato
Tipo_Dato\tProvincia\tRagione_Sociale_Cliente\tFatturato
CLIENTE\tMilano\tRossi\tS.r.l.\tFiliale\t12.000,00
CLIENTE\tComo\tVerdi SpA\t5.000
"""


def test_concrete_scenario():
    text = "Tipo_Dato\tCategoria\tImporto_Totale\nTOTALE\tAlimentari\t1.500,00\n"
    assert parse_records(text) == [
        {"Tipo_Dato": "TOTALE", "Categoria": "Alimentari", "Importo_Totale": 1500.0}
    ]


def test_full_export():
    records = parse_records(EXPORT)
    assert len(records) == 4

    milano, como, rossi, verdi = records
    assert milano["Anno_Corrente"] == 1350.5
    assert milano["Percentuale_Obiettivo"] == pytest.approx(66.51)
    assert milano["__Sezione"] == "Obiettivi per provincia"
    assert milano["Agente_Codice"] == "A042"
    assert milano["Agente_Nome"] == "Bianchi Distribuzione"
    assert milano["Periodo"] == "Gennaio-Settembre 2024"

    assert como["Anno_Precedente"] is None
    assert como["Percentuale_Obiettivo"] is None

    assert rossi["__Sezione"] == "Clienti"
    assert rossi["Ragione_Sociale_Cliente"] == "Rossi S.r.l. Filiale"
    assert rossi["Fatturato"] == 12000.0
    assert verdi["Ragione_Sociale_Cliente"] == "Verdi SpA"


def test_no_header_yields_empty_list_or_error():
    text = "# Periodo: 2024\nsolo testo\nTOTALE\t1.500\n"
    assert parse_records(text) == []
    with pytest.raises(NoHeaderError):
        parse_records(text, require_header=True)


def test_records_have_exactly_header_columns():
    text = "Tipo_Dato;Provincia;;Fatturato\nTOTALE;Milano\nTOTALE;Como;x;10;extra\n"
    records = parse_records(text)
    assert [set(r) for r in records] == [{"Tipo_Dato", "Provincia", "Fatturato"}] * 2
    assert records[0]["Fatturato"] is None
    assert records[1]["Fatturato"] == 10.0


def test_parsing_is_idempotent():
    assert parse_records(EXPORT) == parse_records(EXPORT)


def test_section_attribution():
    with_section = parse_records("## Totals\nTipo_Dato\tValore\nTOTALE\t3\n")
    assert with_section == [{"Tipo_Dato": "TOTALE", "Valore": 3.0, "__Sezione": "Totals"}]

    without_section = parse_records("Tipo_Dato\tValore\nTOTALE\t3\n")
    assert "__Sezione" not in without_section[0]


def test_section_marker_clears_header():
    text = "Tipo_Dato\tValore\nTOTALE\t1\n## Altro\nTOTALE\t2\n"
    assert parse_records(text) == [{"Tipo_Dato": "TOTALE", "Valore": 1.0}]


def test_data_before_header_is_ignored():
    text = "Riepilogo vendite\nTOTALE\t5\nTipo_Dato\tValore\nTOTALE\t1\n"
    assert parse_records(text) == [{"Tipo_Dato": "TOTALE", "Valore": 1.0}]


def test_metadata_applies_to_following_records_only():
    text = (
        "Tipo_Dato\tValore\n"
        "A\t1\n"
        "# Periodo: Q1\n"
        "B\t2\n"
        "# Periodo: Q2\n"
        "C\t3\n"
    )
    records = parse_records(text)
    assert "Periodo" not in records[0]
    assert records[1]["Periodo"] == "Q1"
    assert records[2]["Periodo"] == "Q2"


def test_each_header_picks_its_own_delimiter():
    text = (
        "Tipo_Dato\tValore\n"
        "A\t1\n"
        "Tipo Dato | Descrizione | Valore\n"
        "B | Nota; con punto e virgola | 2\n"
        "TIPO-DATO;Valore\n"
        "C;3\n"
    )
    records = parse_records(text)
    assert records == [
        {"Tipo_Dato": "A", "Valore": 1.0},
        {"Tipo Dato": "B", "Descrizione": "Nota; con punto e virgola", "Valore": 2.0},
        {"TIPO-DATO": "C", "Valore": 3.0},
    ]


def test_pick_delimiter_prefers_most_fields():
    assert pick_delimiter("Tipo_Dato;Provincia;Valore").pattern == ";"
    assert pick_delimiter("Tipo_Dato  Provincia  Valore").pattern == " {2,}"
    assert pick_delimiter("Tipo_Dato,Provincia").pattern == r"\t+| {2,}"


def test_match_header_is_case_and_separator_insensitive():
    assert match_header("tipo dato\tValore")[0] == ["tipo dato", "Valore"]
    assert match_header("TipoDato;Valore")[0] == ["TipoDato", "Valore"]
    assert match_header("TOTALE\tValore") is None


def test_free_text_repair_joins_middle_cells():
    columns = ["Tipo_Dato", "Provincia", "Ragione_Sociale_Cliente", "Fatturato"]
    cells = ["CLIENTE", "Milano", "Rossi", "e", "Figli", "1.000"]
    assert repair_strategy(columns) == "join"
    assert fit_cells(cells, columns) == ["CLIENTE", "Milano", "Rossi e Figli", "1.000"]


def test_free_text_repair_for_category():
    columns = ["Tipo_Dato", "Categoria", "Importo_Totale"]
    assert fit_cells(["TOTALE", "Frutta", "e", "verdura", "10"], columns) == [
        "TOTALE",
        "Frutta e verdura",
        "10",
    ]


def test_other_schemas_truncate():
    columns = ["Tipo_Dato", "Descrizione", "Valore"]
    assert repair_strategy(columns) == "truncate"
    assert fit_cells(["A", "B", "1", "2"], columns) == ["A", "B", "1"]
    assert fit_cells(["A"], columns) == ["A", "", ""]


def test_build_record_skips_blank_columns():
    record = build_record(["Tipo_Dato", "", "Valore"], ["A", "ignored", "1,5"], "Sezione", {"Periodo": "Q1"})
    assert record == {"Tipo_Dato": "A", "Valore": 1.5, "__Sezione": "Sezione", "Periodo": "Q1"}


def test_summarize_lists_columns_in_order():
    summary = summarize(parse_records(EXPORT))
    assert summary.row_count == 4
    assert summary.columns[:2] == ["Tipo_Dato", "Provincia"]
    assert "Ragione_Sociale_Cliente" in summary.columns
    assert len(summary.columns) == len(set(summary.columns))


def test_empty_metadata_value_clears_key():
    text = (
        "# Periodo: Q1\n"
        "Tipo_Dato\tValore\n"
        "A\t1\n"
        "# Periodo:\n"
        "B\t2\n"
    )
    records = parse_records(text)
    assert records[0]["Periodo"] == "Q1"
    assert "Periodo" not in records[1]
