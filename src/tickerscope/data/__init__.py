"""Market data sources."""

from tickerscope.data.quotes import (MockQuoteSource, QuoteSource,
                                     YahooQuoteSource, quote_from_info)
from tickerscope.data.sources import (CSVDataSource, DataSource,
                                      YahooDataSource, fetch_histories,
                                      resolve_data_source)

__all__ = [
    "DataSource",
    "YahooDataSource",
    "CSVDataSource",
    "fetch_histories",
    "resolve_data_source",
    "QuoteSource",
    "YahooQuoteSource",
    "MockQuoteSource",
    "quote_from_info",
]
