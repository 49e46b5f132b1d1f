from flightzone.ingestion.airports import icao_to_iata


def test_known_airport():
    assert icao_to_iata('EDDF') == 'FRA'
    assert icao_to_iata(' eglL ') == 'LHR'


def test_unknown_airport_uses_last_three_letters():
    assert icao_to_iata('KBOS') == 'BOS'
