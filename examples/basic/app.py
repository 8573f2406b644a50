import asyncio
from dataclasses import dataclass

from workunit import SQLiteResource, UnitOfWork


@dataclass
class City:
    id: int
    name: str
    population: int

    async def create_by_tx(self, tx):
        await tx.execute(
            "INSERT INTO city (id, name, population) VALUES (?, ?, ?)",
            (self.id, self.name, self.population),
        )

    async def update_by_tx(self, tx):
        await tx.execute(
            "UPDATE city SET name = ?, population = ? WHERE id = ?",
            (self.name, self.population, self.id),
        )

    async def delete_by_tx(self, tx):
        await tx.execute("DELETE FROM city WHERE id = ?", (self.id,))


class CityUnitOfWork(UnitOfWork):
    async def create(self, city: City) -> None:
        await self._mark_create(city)

    async def update(self, city: City) -> None:
        await self._mark_update(city)

    async def delete(self, city: City) -> None:
        await self._mark_delete(city)


async def run():
    resource = SQLiteResource(":memory:")
    await resource.open()
    await resource.connection.execute(
        "CREATE TABLE city (id INTEGER PRIMARY KEY, name TEXT, population INT)"
    )
    uow = CityUnitOfWork(resource)

    kabul = City(1, "Kabul", 1780000)
    qandahar = City(2, "Qandahar", 237500)

    # Both cities are inserted in a single transaction
    async with uow:
        await uow.create(kabul)
        await uow.create(qandahar)

    # Without a declared scope, each action commits on its own
    qandahar.population = 240000
    await uow.update(qandahar)

    cursor = await resource.connection.execute("SELECT * FROM city")
    print([tuple(row) for row in await cursor.fetchall()])
    await resource.close()


asyncio.run(run())
