import json
from datetime import datetime
from io import BytesIO

import pandas as pd
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpResponse

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _default_filename(prefix='export'):
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f'{prefix}_{timestamp}'


def rows_to_dataframe(rows, columns=None):
    """
    Convert a list of dicts to a DataFrame.
    Nested values (JSON snapshots) are written as JSON text.
    """
    data = []
    for row in rows:
        flat = {}
        for key, value in row.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, ensure_ascii=False, cls=DjangoJSONEncoder)
            flat[key] = value
        data.append(flat)

    return pd.DataFrame(data, columns=columns)


def _attachment(content, content_type, filename):
    response = HttpResponse(content, content_type=content_type)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def export_to_excel(rows, filename=None, sheet_name='Sheet1', columns=None):
    """
    Export rows to an .xlsx attachment.

    Args:
        rows: List of dictionaries
        filename: Output filename (without extension)
        sheet_name: Excel sheet name
        columns: Column order (defaults to the keys of the first row)

    Returns:
        HttpResponse with Excel file
    """
    filename = filename or _default_filename()
    if not filename.endswith('.xlsx'):
        filename = f'{filename}.xlsx'

    df = rows_to_dataframe(rows, columns=columns)

    with BytesIO() as bio:
        with pd.ExcelWriter(bio, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
        content = bio.getvalue()

    return _attachment(content, XLSX_CONTENT_TYPE, filename)


def export_to_csv(rows, filename=None, columns=None):
    filename = filename or _default_filename()
    if not filename.endswith('.csv'):
        filename = f'{filename}.csv'

    df = rows_to_dataframe(rows, columns=columns)
    return _attachment(df.to_csv(index=False), 'text/csv', filename)


def export_to_json(rows, filename=None):
    filename = filename or _default_filename()
    if not filename.endswith('.json'):
        filename = f'{filename}.json'

    content = json.dumps(list(rows), ensure_ascii=False, cls=DjangoJSONEncoder, indent=2)
    return _attachment(content, 'application/json', filename)
