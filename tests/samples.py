"""Sample messages shared by the test modules."""

HL7_ORU = (
    "MSH|^~\\&|LAB|FAC|HIS|HOSP|20240101120000||ORU^R01|MSG00001|P|2.5\r"
    "PID|1||12345||Doe^John||19800101|M\r"
    "OBX|1|NM|GLU^Glucose^L||95|mg/dL|70-100|N"
)

HL7_ADT_WITH_TRAILING_FIELDS = (
    "MSH|^~\\&|ADT|HOSP|EMR|HOSP|20240101||ADT^A01|42|P|2.5|\r\n"
    "EVN|A01|20240101\r\n"
    "PID|1||999||Smith^Jane"
)

ASTM_RESULT = (
    "\x021H|\\^&|||Analyzer^1.0|||||||P|E1394-97\r"
    "2P|1||PAT001||Doe^John||19800101|M\r"
    "3O|1|SPEC01||^^^GLU|R\r"
    "4R|1|^^^GLU|95|mg/dL|70-100|N||F\r"
    "5L|1|N\x03"
)

FHIR_PATIENT = '{"resourceType":"Patient","id":"abc","name":[{"family":"Doe"}]}'

FHIR_BUNDLE = """{
  "resourceType": "Bundle",
  "type": "collection",
  "entry": [
    {"resource": {"resourceType": "Patient", "id": "1"}},
    {"resource": {"resourceType": "Observation", "id": "2"}},
    {"resource": {"resourceType": "Patient", "id": "3"}}
  ]
}"""

FHIR_PATIENT_XML = (
    '<Patient xmlns="http://hl7.org/fhir">'
    '<id value="example"/>'
    '<active value="true"/>'
    '<name><family value="Doe"/><given value="John"/></name>'
    '</Patient>'
)

CDA_DOCUMENT = """<?xml version="1.0"?>
<ClinicalDocument xmlns="urn:hl7-org:v3" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <typeId root="2.16.840.1.113883.1.3" extension="POCD_HD000040"/>
  <templateId root="2.16.840.1.113883.10.20.22.1.1"/>
  <id root="2.16.840.1.113883.19.5" extension="12345"/>
  <code code="34133-9" codeSystem="2.16.840.1.113883.6.1" displayName="Summary of episode note"/>
  <title>Continuity of Care Document</title>
  <effectiveTime value="20240101120000"/>
  <recordTarget>
    <patientRole>
      <id extension="998991"/>
      <patient><name><given>John</given><family>Doe</family></name></patient>
    </patientRole>
  </recordTarget>
  <component>
    <structuredBody>
      <component>
        <section>
          <code code="48765-2" displayName="Allergies"/>
          <title>Allergies</title>
          <text>
            <table border="1">
              <thead><tr><th>Substance</th><th>Reaction</th></tr></thead>
              <tbody><tr><td>Penicillin</td><td>Hives</td></tr></tbody>
            </table>
          </text>
        </section>
      </component>
    </structuredBody>
  </component>
</ClinicalDocument>
"""

GENERIC_XML = """<?xml version="1.0" encoding="UTF-8"?>
<catalog xmlns="urn:example:catalog" xmlns:x="urn:example:extra">
  <book id="1"><title>A</title></book>
  <book id="2"><title>B</title></book>
  <x:note>hi</x:note>
</catalog>"""
