"""
Legal document templates.

Rendering is a pure function of the variables map: the same map always yields
byte-identical text, which is what lets a stored snapshot be re-rendered for
preview or audit. Missing variables raise instead of rendering blanks.
"""

from __future__ import annotations

from typing import Any, Mapping

from jinja2 import Environment, StrictUndefined

_env = Environment(
    undefined=StrictUndefined,
    autoescape=False,
    keep_trailing_newline=True,
)

_RULE = "━" * 48
_THIN_RULE = "─" * 48

MANDATE_CONTRACT_VARIABLES = (
    "contract_id",
    "contract_date",
    "operator_company_name",
    "operator_address",
    "operator_uid",
    "operator_email",
    "creator_full_name",
    "creator_address",
    "creator_email",
    "mission_title",
    "mission_description",
    "brand_name",
    "deliverables",
    "format",
    "script_type",
    "deadline",
    "revision_count",
    "amount_ttc",
    "amount_ht",
    "vat_amount",
    "vat_rate",
    "payment_terms",
    "initiator_accepted_at",
    "counterparty_accepted_at",
    "counterparty_network_address",
)

DIRECT_CONTRACT_VARIABLES = (
    "contract_id",
    "contract_date",
    "brand_company_name",
    "brand_contact_name",
    "brand_address",
    "brand_email",
    "creator_full_name",
    "creator_address",
    "creator_email",
    "mission_title",
    "mission_description",
    "deliverables",
    "rights_usage",
    "deadline",
    "revision_count",
    "amount_ttc",
    "payment_terms",
    "initiator_accepted_at",
    "initiator_network_address",
    "counterparty_accepted_at",
    "counterparty_network_address",
)

INVOICE_VARIABLES = (
    "invoice_number",
    "invoice_date",
    "operator_company_name",
    "operator_address",
    "operator_uid",
    "operator_email",
    "creator_full_name",
    "creator_address",
    "creator_email",
    "mission_title",
    "mission_ref",
    "brand_name",
    "deliverables_summary",
    "completion_date",
    "amount_ht",
    "vat_rate",
    "vat_amount",
    "amount_ttc",
    "payment_terms",
    "payment_due_date",
)


MANDATE_CONTRACT_TEMPLATE = _env.from_string(
    """CONTRAT DE MANDAT POUR CRÉATION DE CONTENU NUMÉRIQUE (UGC)
Conforme au Code des Obligations suisse (art. 394 ss CO)

ID DU CONTRAT : {{ contract_id }}
DATE DE GÉNÉRATION : {{ contract_date }}

""" + _RULE + """

ARTICLE 1 — DÉSIGNATION DES PARTIES

Le présent contrat est conclu entre :

Le Mandant :
{{ operator_company_name }}
Siège : {{ operator_address }}
IDE : {{ operator_uid }}
Email : {{ operator_email }}
Ci-après le « Mandant » ou « MOSH »

Le Mandataire :
{{ creator_full_name }}
Domicile : {{ creator_address }}
Email : {{ creator_email }}
Ci-après le « Mandataire » ou le « Créateur »


ARTICLE 2 — OBJET DU MANDAT

MOSH confie au Créateur, qui l'accepte, le mandat de créer et livrer des contenus numériques originaux (ci-après les « Contenus ») dans le cadre de la mission « {{ mission_title }} ». Cette mission est réalisée pour le compte d'un client final de MOSH (ci-après la « Marque » : {{ brand_name }}), avec lequel le Créateur n'entretient aucun lien contractuel direct.

La prestation relève du mandat au sens des articles 394 ss du Code des obligations suisse.


ARTICLE 3 — MISSIONS ET LIVRABLES

3.1. Description de la mission
{{ mission_description }}

3.2. Spécifications techniques
• Format vidéo : {{ format }}
• Type de contenu : {{ script_type }}

3.3. Liste des livrables
{{ deliverables }}

3.4. Délais
L'intégralité des Contenus doit être soumise à MOSH pour validation via la plateforme au plus tard le {{ deadline }}. Le respect de ce délai est une condition essentielle du mandat.


ARTICLE 4 — RÉMUNÉRATION ET PAIEMENT

• Montant HT : {{ amount_ht }} CHF
• TVA ({{ vat_rate }}%) : {{ vat_amount }} CHF
• Montant TTC : {{ amount_ttc }} CHF

Ce montant est ferme et définitif pour la mission décrite, incluant tous les frais engagés par le Créateur.

Modalités de paiement : {{ payment_terms }}


ARTICLE 5 — RÉVISIONS ET VALIDATION

Le Créateur inclut {{ revision_count }} révision(s) dans son tarif initial. Toute révision supplémentaire fait l'objet d'un accord financier séparé. La validation est réputée acquise si MOSH n'émet aucune réserve dans les 5 jours ouvrables suivant la livraison.


ARTICLE 6 — CESSION DES DROITS ET DROIT À L'IMAGE

Le Créateur cède à MOSH l'intégralité des droits patrimoniaux sur les Contenus, MOSH étant autorisé à les transmettre à la Marque, et autorise la diffusion de son image et de sa voix (art. 28 CC) pour les mêmes supports, durées et territoires.


ARTICLE 7 — RÉSILIATION (ART. 404 CO)

Le mandat peut être résilié en tout temps par chacune des parties. En cas de résiliation en temps inopportun sans motif sérieux, la partie qui résilie indemnise l'autre pour le dommage causé.


ARTICLE 8 — ACCEPTATION ÉLECTRONIQUE ET FOR

L'acceptation électronique du présent contrat sur la plateforme constitue une acceptation valable au sens de l'article 1 CO. L'horodatage et l'adresse IP enregistrés font foi. Le présent contrat est régi par le droit suisse ; for exclusif à Lausanne, canton de Vaud.


""" + _RULE + """

ACCEPTATION ÉLECTRONIQUE

Pour MOSH :
Accepté automatiquement lors de la génération du contrat
Horodatage : {{ initiator_accepted_at }}

Pour le Créateur :
Accepté par : {{ creator_full_name }}
Horodatage : {{ counterparty_accepted_at }}
Adresse IP : {{ counterparty_network_address }}

""" + _RULE + """
Contrat généré automatiquement par la plateforme MOSH.
"""
)


DIRECT_CONTRACT_TEMPLATE = _env.from_string(
    """CONTRAT DE PRESTATION DE CRÉATION DE CONTENU (UGC)
Conforme au Code des Obligations suisse

ID DU CONTRAT : {{ contract_id }}
DATE DE GÉNÉRATION : {{ contract_date }}

""" + _RULE + """

ARTICLE 1 — PARTIES

La Marque :
{{ brand_company_name }}
Représentée par : {{ brand_contact_name }}
Adresse : {{ brand_address }}
Email : {{ brand_email }}

Le Créateur :
{{ creator_full_name }}
Adresse : {{ creator_address }}
Email : {{ creator_email }}


ARTICLE 2 — OBJET

La Marque confie au Créateur la réalisation de la campagne « {{ mission_title }} ».

{{ mission_description }}


ARTICLE 3 — LIVRABLES ET DÉLAIS

{{ deliverables }}

Date de livraison : {{ deadline }}
Révisions incluses : {{ revision_count }}


ARTICLE 4 — DROITS D'UTILISATION

{{ rights_usage }}


ARTICLE 5 — RÉMUNÉRATION

Montant : {{ amount_ttc }} CHF
{{ payment_terms }}


""" + _RULE + """

SIGNATURES ÉLECTRONIQUES

Pour la Marque :
Accepté par : {{ brand_contact_name }}
Horodatage : {{ initiator_accepted_at }}
Adresse IP : {{ initiator_network_address }}

Pour le Créateur :
Accepté par : {{ creator_full_name }}
Horodatage : {{ counterparty_accepted_at }}
Adresse IP : {{ counterparty_network_address }}

""" + _RULE + """
Contrat généré automatiquement par la plateforme UGC Suisse.
"""
)


INVOICE_TEMPLATE = _env.from_string(
    _RULE
    + """
                    FACTURE
"""
    + _RULE
    + """

N° de facture : {{ invoice_number }}
Date : {{ invoice_date }}

"""
    + _THIN_RULE
    + """

DE :
{{ operator_company_name }}
{{ operator_address }}
IDE : {{ operator_uid }}
Email : {{ operator_email }}

À :
{{ creator_full_name }}
{{ creator_address }}
Email : {{ creator_email }}

"""
    + _THIN_RULE
    + """

DÉSIGNATION DE LA PRESTATION

Mission : {{ mission_title }}
Référence : {{ mission_ref }}
Client final : {{ brand_name }}

{{ deliverables_summary }}

Date de livraison : {{ completion_date }}

"""
    + _THIN_RULE
    + """

DÉTAIL FINANCIER

Montant HT :                    CHF {{ amount_ht }}
TVA ({{ vat_rate }}%) :                     CHF {{ vat_amount }}
TOTAL TTC :                     CHF {{ amount_ttc }}

"""
    + _THIN_RULE
    + """

CONDITIONS DE PAIEMENT

{{ payment_terms }}
Échéance : {{ payment_due_date }}

"""
    + _RULE
    + """
Facture générée automatiquement par la plateforme MOSH.
"""
)


def _render(template, required: tuple[str, ...], variables: Mapping[str, Any]) -> str:
    missing = [name for name in required if name not in variables]
    if missing:
        raise KeyError(f"missing template variables: {', '.join(missing)}")
    return template.render(**{name: variables[name] for name in required})


def render_mandate_contract(variables: Mapping[str, Any]) -> str:
    return _render(MANDATE_CONTRACT_TEMPLATE, MANDATE_CONTRACT_VARIABLES, variables)


def render_direct_contract(variables: Mapping[str, Any]) -> str:
    return _render(DIRECT_CONTRACT_TEMPLATE, DIRECT_CONTRACT_VARIABLES, variables)


def render_invoice(variables: Mapping[str, Any]) -> str:
    return _render(INVOICE_TEMPLATE, INVOICE_VARIABLES, variables)
