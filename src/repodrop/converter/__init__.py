"""
Spreadsheet converter

Turns the first worksheet of an XLSX workbook into JSON row objects, either
in-process or through the converter service.
"""

from repodrop.converter.spreadsheet import ConversionResult, convert_spreadsheet

__all__ = ["ConversionResult", "convert_spreadsheet"]
