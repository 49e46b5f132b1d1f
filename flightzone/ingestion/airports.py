"""
Airport code helpers.

The schedule feed is keyed by IATA departure code while the airport is
configured by ICAO code.
"""

from typing import Dict

# ICAO -> IATA for the airports we are usually pointed at
ICAO_TO_IATA: Dict[str, str] = {
    'EDDF': 'FRA',  # Frankfurt
    'EDDM': 'MUC',  # Munich
    'EDDB': 'BER',  # Berlin Brandenburg
    'EGLL': 'LHR',  # London Heathrow
    'LFPG': 'CDG',  # Paris Charles de Gaulle
    'LEMD': 'MAD',  # Madrid
    'LIRF': 'FCO',  # Rome Fiumicino
    'EHAM': 'AMS',  # Amsterdam Schiphol
    'KJFK': 'JFK',  # New York JFK
    'KLAX': 'LAX',  # Los Angeles
    'KORD': 'ORD',  # Chicago O'Hare
    'KSFO': 'SFO',  # San Francisco
}


def icao_to_iata(icao: str) -> str:
    """
    Translate an ICAO airport code to IATA.

    Unknown codes fall back to their last three characters, which is
    right for most US (Kxxx) airports and many others.
    """
    code = (icao or '').strip().upper()
    if code in ICAO_TO_IATA:
        return ICAO_TO_IATA[code]
    return code[-3:]
