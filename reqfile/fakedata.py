"""reqfile fake data - Faker-backed producers for $random* person/contact/internet values."""

from faker import Faker

fake = Faker()

# suffix -> producer; each suffix is exposed as {{$random<Suffix>}} and {{$random.<suffix>}}
FAKERS = {
    "FirstName": fake.first_name,
    "LastName": fake.last_name,
    "FullName": fake.name,
    "JobTitle": fake.job,
    "PhoneNumber": fake.phone_number,
    "StreetAddress": fake.street_address,
    "City": fake.city,
    "State": fake.state,
    "ZipCode": fake.zipcode,
    "Country": fake.country,
    "Url": fake.url,
    "DomainName": fake.domain_name,
    "UserAgent": fake.user_agent,
    "MacAddress": fake.mac_address,
}
