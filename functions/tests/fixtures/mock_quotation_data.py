"""Mock quotation data for testing.

A detached house quotation in the camelCase shape stored in Firestore.

Expected cost roll-up of SAMPLE_QUOTATION:
    elements        10 x 1000            = 10000
    trusses         20 x 100             =  2000
    products        5 x 400              =  2000
    design          1500 (+ 500 excluded) =  1500
    installation    14000 * (1.20 - 1)   =  2800
    transportation  100 km * 2 * 2.20    =   440
"""

from typing import Dict, Any, List


SAMPLE_QUOTATION: Dict[str, Any] = {
    "id": "q-123",
    "status": "draft",
    "buildingType": "omakotitalo",
    "sections": [
        {
            "id": "section-ext-walls",
            "title": "Ulkoseinät",
            "order": 0,
            "category": "elements",
            "items": [
                {
                    "id": "wall-1",
                    "type": "US-198",
                    "description": "Ulkoseinäelementti",
                    "quantity": 10,
                    "unit": "kpl",
                    "unitPrice": 1000,
                }
            ],
        },
        {
            "id": "section-roof",
            "title": "Kattoristikot",
            "order": 1,
            "category": "trusses",
            "items": [
                {
                    "id": "truss-1",
                    "description": "Harjaristikko",
                    "quantity": 20,
                    "unitPrice": 100,
                    "trussType": "gable",
                }
            ],
        },
        {
            "id": "section-windows",
            "title": "Ikkunat ja ovet",
            "order": 2,
            "category": "windowsDoors",
            "items": [
                {
                    "id": "window-1",
                    "tunnus": "IK-1",
                    "type": "window",
                    "description": "MSEA 12x12",
                    "quantity": 5,
                    "unitPrice": 400,
                }
            ],
        },
        {
            "id": "section-documents",
            "title": "Suunnittelu",
            "order": 3,
            "category": "design",
            "items": [
                {"id": "doc-1", "description": "Pääpiirustukset", "price": 1500, "included": True},
                {"id": "doc-2", "description": "Energiatodistus", "price": 500, "included": False},
            ],
        },
    ],
    "pricingSettings": {
        "categoryMarkups": {
            "elements": 25,
            "trusses": 25,
            "products": 20,
            "installation": 25,
            "transportation": 15,
            "design": 30,
            "other": 0,
        },
        "commissionPercentage": 4.0,
        "vatMode": "standard",
    },
    "delivery": {
        "assemblyLevelId": "shell-and-roof",
        "transportation": {"distanceKm": 100, "truckCount": 1},
    },
}

EXPECTED_COSTS: Dict[str, float] = {
    "elements": 10000.0,
    "trusses": 2000.0,
    "products": 2000.0,
    "installation": 2800.0,
    "transportation": 440.0,
    "design": 1500.0,
    "other": 0.0,
}


SAMPLE_COST_ENTRIES: List[Dict[str, Any]] = [
    {
        "id": "entry-1",
        "date": "2026-03-02",
        "category": "elements",
        "description": "Elementtitoimitus",
        "amount": 12000,
        "supplier": "Puuelementti Oy",
        "costType": "material",
    },
    {
        "id": "entry-2",
        "date": "2026-03-10",
        "category": "installation",
        "description": "Asennustyö",
        "costType": "labor",
        "laborHours": 100,
        "laborRate": 30,
    },
    {
        "id": "entry-3",
        "date": "2026-02-20",
        "category": "logistics",
        "description": "Kuljetus",
        "amount": 500,
        "costType": "material",
    },
]


# Invoice text as an LLM might answer it: fenced, with a heading and chatter
LLM_INVOICE_RESPONSE = """# Laskun analyysi

Tässä tulos:

```json
{
  "supplier": "Rautakauppa Oy",
  "date": "2026-04-15",
  "totalAmount": 1240.5,
  "category": "products",
  "description": "Ikkunoiden tiivistemateriaalit",
  "items": [
    {"description": "Tiivistenauha", "amount": 240.5},
    {"description": "Uretaani", "amount": 1000, "category": "products"}
  ]
}
```
"""
