"""
Static zone rate tables for Jabodetabek destinations.

Built once at import time and never mutated: a read-only map of
city -> ZoneRate (city default plus district overrides) and an ordered
tuple of transit surcharge rules evaluated first-match-wins.

All prices are rupiah per kilogram; surcharges are flat rupiah.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Tuple


GLOBAL_FALLBACK_PRICE = 27000
DEFAULT_TRANSIT_SURCHARGE = 0


def normalize_zone_name(value: str | None) -> str:
    """Upper-case and collapse whitespace so lookups ignore casing and spacing."""
    if not value:
        return ""
    return " ".join(value.split()).upper()


@dataclass(frozen=True)
class ZoneRate:
    """City-level default price with district-level overrides."""
    city: str
    default_price: int
    districts: Tuple[str, ...]
    district_overrides: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class TransitRule:
    """One transit surcharge rule; `matches` receives 'CITY DISTRICT' upper-cased."""
    label: str
    surcharge: int
    matches: Callable[[str], bool]


def _zone(city: str, default_price: int, districts: list[str], overrides: dict[str, int] | None = None) -> ZoneRate:
    return ZoneRate(
        city=city,
        default_price=default_price,
        districts=tuple(districts),
        district_overrides=MappingProxyType(
            {normalize_zone_name(name): price for name, price in (overrides or {}).items()}
        ),
    )


_ZONES = [
    _zone("JAKARTA BARAT", 27000, [
        "Cengkareng", "Grogol", "Kebon jeruk", "Kali deres", "Pal merah", "Kembangan",
        "Taman sari", "Tambora",
    ]),
    _zone("JAKARTA PUSAT", 27000, [
        "Cempaka putih", "Gambir", "Johar baru", "Kemayoran", "Menteng",
        "Sawah besar", "Senen", "Tanah abang",
    ]),
    _zone("JAKARTA SELATAN", 29000, [
        "Cilandak", "Jagakarsa", "Kebayoran baru", "Kebayoran lama", "Mampang prapatan",
        "Pasar minggu", "Pesanggrahan", "Pancoran", "Setiabudi", "Tebet",
    ]),
    _zone("JAKARTA TIMUR", 29000, [
        "Cakung", "Cipayung", "Ciracas", "Duren sawit", "Jatinegara", "Kramat jati",
        "Makasar", "Matraman", "Pasar rebo", "Pulo gadung",
    ]),
    _zone("JAKARTA UTARA", 30000, [
        "Penjaringan", "Cilincing", "Kelapa gading", "Koja", "Pademangan", "Tanjung priok",
        "Kebon Bawang", "Papanggo", "Sungai Bambu", "Tj Priok", "Warakas",
        "Sunter Jaya", "Sunter Agung",
    ], {
        "Sunter Jaya": 27000,
        "Sunter Agung": 27000,
        "Kebon Bawang": 30000,
        "Papanggo": 30000,
        "Sungai Bambu": 30000,
        "Tj Priok": 30000,
        "Warakas": 30000,
    }),
    _zone("TANGERANG", 27000, [
        "Batuceper", "Benda", "Cibodas", "Ciledug", "Cipondoh", "Jatiuwung",
        "Karangtengah", "Karawaci", "Larangan", "Neglasari", "Periuk", "Pinang", "Tangerang",
    ], {
        "Neglasari": 30000,
        "Benda": 30000,
        "Jatiuwung": 30000,
        "Cibodas": 30000,
    }),
    _zone("TANGERANG SELATAN", 30000, [
        "Ciputat", "Ciputat Timur", "Pamulang", "Pondok Aren", "Serpong", "Serpong Utara",
    ], {
        "Serpong Utara": 27000,
    }),
    _zone("TANGERANG KABUPATEN", 35000, [
        "Kelapa Dua", "Curug", "Kosambi", "Legok", "Pagedangan", "Pasar Kemis",
        "Teluknaga", "Balaraja", "Cikupa", "Cisauk", "Pakuhaji", "Panongan",
        "Rajeg", "Sepatan", "Sepatan Timur", "Sindang Jaya", "Solear", "Tigaraksa",
    ], {
        "Kelapa Dua": 30000,
        "Curug": 30000,
        "Kosambi": 30000,
        "Pagedangan": 30000,
    }),
    _zone("BEKASI KOTA", 32000, [
        "Bantargebang", "Bekasi Barat", "Bekasi Selatan", "Bekasi Timur", "Bekasi Utara",
        "Jatiasih", "Jatisampurna", "Medan Satria", "Mustikajaya", "Pondokgede",
        "Pondokmelati", "Rawalumbu",
    ]),
    _zone("BEKASI KABUPATEN", 32000, [
        "Tarumajaya", "Babelan", "Cibarusah", "Cibitung", "Cikarang Barat", "Cikarang Pusat",
        "Cikarang Selatan", "Cikarang Timur", "Cikarang Utara", "Karangbahagia",
        "Kedungwaringin", "Serang Baru", "Setu", "Tambun Selatan", "Tambun Utara",
    ]),
    _zone("DEPOK", 35000, [
        "Beji", "Bojongsari", "Cilodong", "Cimanggis", "Cinere", "Cipayung",
        "Limo", "Pancoran Mas", "Sawangan", "Sukmajaya", "Tapos",
    ]),
    _zone("BOGOR KOTA", 35000, [
        "Bogor Barat", "Bogor Selatan", "Bogor Tengah", "Bogor Timur", "Bogor Utara", "Tanah Sereal",
    ]),
    _zone("BOGOR KABUPATEN", 35000, [
        "Babakan Madang", "Bojonggede", "Cibinong", "Cileungsi", "Gunung Putri",
        "Gunung Sindur", "Citeureup", "Jonggol", "Ciomas", "Ciseeng", "Tajurhalang",
        "Caringin", "Dramaga", "Cariu", "Klapanunggal", "Rumpin", "Ciawi", "Tamansari",
    ]),
]

ZONE_RATES: Mapping[str, ZoneRate] = MappingProxyType({zone.city: zone for zone in _ZONES})


def _contains(*needles: str) -> Callable[[str], bool]:
    """Predicate true when any needle is a substring of the zone text."""
    return lambda text: any(needle in text for needle in needles)


def _contains_all(*needles: str) -> Callable[[str], bool]:
    return lambda text: all(needle in text for needle in needles)


def _rule(label: str, surcharge: int, matches: Callable[[str], bool] | None = None) -> TransitRule:
    return TransitRule(label=label, surcharge=surcharge, matches=matches or _contains(label))


# Order matters: first match wins
TRANSIT_RULES: Tuple[TransitRule, ...] = (
    # Tangerang Kabupaten
    _rule("TELUKNAGA", 20000),
    _rule("BALARAJA", 50000),
    _rule("PAKUHAJI", 50000),
    _rule("RAJEG", 50000),
    _rule("SEPATAN TIMUR", 30000),
    _rule("SEPATAN", 30000),
    _rule("SINDANG JAYA", 20000),
    _rule("SOLEAR", 100000),
    _rule("TIGARAKSA", 75000),
    # Bekasi
    _rule("JATISAMPURNA", 30000),
    _rule("TARUMAJAYA", 30000),
    _rule("BABELAN", 30000),
    _rule("CIBARUSAH", 30000),
    _rule("CIBITUNG", 50000),
    _rule("CIKARANG BARAT", 75000),
    _rule("CIKARANG PUSAT", 75000),
    _rule("CIKARANG UTARA", 75000),
    _rule("CIKARANG SELATAN", 100000),
    _rule("CIKARANG TIMUR", 100000),
    _rule("KARANGBAHAGIA", 75000),
    _rule("KEDUNGWARINGIN", 100000),
    _rule("SERANG BARU", 100000),
    _rule("SETU (BEKASI)", 100000, _contains_all("SETU", "BEKASI")),
    _rule("TAMBUN SELATAN", 50000),
    _rule("TAMBUN UTARA", 50000),
    # Depok
    _rule("TAPOS", 30000),
    # Bogor
    _rule("BOGOR BARAT", 100000),
    _rule("BOGOR SELATAN", 100000),
    _rule("BOGOR TENGAH", 100000),
    _rule("BOGOR TIMUR", 100000),
    _rule("BOGOR UTARA", 100000),
    _rule("TANAH SEREAL", 100000),
    _rule("GUNUNG SINDUR", 100000),
    _rule("BABAKAN MADANG", 100000),
    _rule("BOJONGGEDE", 75000, _contains("BOJONG GEDE", "BOJONGGEDE")),
    _rule("CIBINONG", 50000),
    _rule("CILEUNGSI", 75000),
    _rule("GUNUNG PUTRI", 75000),
    _rule("BOGOR 100K DISTRICTS", 100000, _contains(
        "CITEUREUP", "JONGGOL", "CIOMAS", "CISEENG", "TAJURHALANG",
        "CARINGIN", "DRAMAGA", "CARIU", "KLAPANUNGGAL", "RUMPIN",
    )),
    _rule("CIAWI / TAMANSARI", 150000, _contains("CIAWI", "TAMANSARI")),
)
