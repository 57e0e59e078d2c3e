"""The built-in UCS asset graph."""

from __future__ import annotations

from .registry import AssetGraph
from .types import AssetNode, CalculationType

BASE = CalculationType.BASE
CALCULATED = CalculationType.CALCULATED
SUB_INDEX = CalculationType.SUB_INDEX
INDEX = CalculationType.INDEX
MAIN_INDEX = CalculationType.MAIN_INDEX
CREDIT = CalculationType.CREDIT


def default_nodes() -> list[AssetNode]:
    """Asset nodes of the UCS index, leaves first."""
    return [
        # Currencies
        AssetNode("usd", BASE, name="Dólar Americano", description="USD/BRL"),
        AssetNode("eur", BASE, name="Euro", description="EUR/BRL"),

        # Quoted commodities
        AssetNode("boi_gordo", BASE, name="Boi Gordo", currency="BRL",
                  description="Live cattle, BRL per arroba"),
        AssetNode("milho", BASE, name="Milho", currency="USD",
                  description="Corn futures, USD cents per bushel"),
        AssetNode("soja", BASE, name="Soja", currency="USD",
                  description="Soybean futures, USD cents per bushel"),
        AssetNode("madeira", BASE, name="Madeira", currency="USD",
                  description="Lumber futures, USD per thousand board feet"),
        AssetNode("carbono", BASE, name="Carbono", currency="EUR",
                  description="Carbon credit futures, EUR per tCO2"),

        # Price conversions to BRL
        AssetNode("preco_milho_ton", CALCULATED, ("milho", "usd"),
                  name="Milho BRL/t", formula="milho_ton_brl"),
        AssetNode("preco_soja_ton", CALCULATED, ("soja", "usd"),
                  name="Soja BRL/t", formula="soja_ton_brl"),
        AssetNode("preco_madeira_tora", CALCULATED, ("madeira", "usd"),
                  name="Madeira em tora BRL/m³", formula="madeira_tora_brl"),
        AssetNode("preco_carbono_brl", CALCULATED, ("carbono", "eur"),
                  name="Carbono BRL/tCO2", formula="product"),

        # Revenue per hectare
        AssetNode("renda_pecuaria", CALCULATED, ("boi_gordo",),
                  name="Renda Pecuária", formula="renda_pecuaria"),
        AssetNode("renda_milho", CALCULATED, ("preco_milho_ton",),
                  name="Renda Milho", formula="renda_milho"),
        AssetNode("renda_soja", CALCULATED, ("preco_soja_ton",),
                  name="Renda Soja", formula="renda_soja"),

        # Components
        AssetNode("vm", SUB_INDEX, ("preco_madeira_tora",),
                  name="VM", description="Valor da Madeira"),
        AssetNode("vus", SUB_INDEX, ("renda_pecuaria", "renda_milho", "renda_soja"),
                  name="VUS", description="Valor de Uso do Solo"),
        AssetNode("carbono_crs", CREDIT, ("preco_carbono_brl",),
                  name="Carbono CRS", description="Valor do carbono por hectare"),
        AssetNode("agua_crs", CREDIT, ("vus",),
                  name="Água CRS", description="Valor da água por hectare"),
        AssetNode("crs", SUB_INDEX, ("carbono_crs", "agua_crs"),
                  name="CRS", formula="sum",
                  description="Custo da Responsabilidade Socioambiental"),

        # Indices
        AssetNode("pdm", INDEX, ("vm", "vus", "crs"),
                  name="PDM", formula="sum",
                  description="Potencial Desflorestador Monetizado"),
        AssetNode("ivp", INDEX, ("pdm",),
                  name="IVP", description="Índice de Viabilidade de Projeto"),
        AssetNode("ucs", INDEX, ("ivp",),
                  name="UCS", description="Unidade de Crédito de Sustentabilidade"),
        AssetNode("ucs_ase", MAIN_INDEX, ("ucs",),
                  name="Índice UCS ASE", description="Índice principal"),
        AssetNode("ucs_ase_usd", MAIN_INDEX, ("ucs_ase", "usd"), formula="brl_to_fx",
                  currency="USD", name="Índice UCS ASE (USD)",
                  description="Índice principal convertido para dólar"),
        AssetNode("ucs_ase_eur", MAIN_INDEX, ("ucs_ase", "eur"), formula="brl_to_fx",
                  currency="EUR", name="Índice UCS ASE (EUR)",
                  description="Índice principal convertido para euro"),
    ]


def create_default_graph() -> AssetGraph:
    """Create the built-in UCS asset graph."""
    return AssetGraph(default_nodes())
